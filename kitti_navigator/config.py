"""
Configuration module
YAML settings and the list of known KITTI raw sequences
"""

import copy
import os

import yaml


# Sequences of the 2011_09_26 recording day that ship tracklet annotations
AVAILABLE_DATASETS = [
    f"2011_09_26_drive_{number:04d}"
    for number in (1, 2, 5, 9, 11, 13, 14, 17, 18, 48, 51, 56, 57, 59, 60, 84, 91, 93)
]

DEFAULT_COLORS = {
    'Car': [255, 0, 0],
    'Van': [255, 128, 0],
    'Truck': [255, 255, 0],
    'Pedestrian': [0, 255, 255],
    'Person (sitting)': [0, 128, 255],
    'Cyclist': [0, 0, 255],
    'Tram': [128, 0, 255],
    'Misc': [255, 0, 255],
}

DEFAULT_CONFIG = {
    'data': {
        'base_dir': '.',
        'download': False,
        'datasets': AVAILABLE_DATASETS,
        'default_dataset': 0,
    },
    'navigation': {
        'hover_offset': [0.0, 0.0, 6.0],
    },
    'colors': DEFAULT_COLORS,
    'visualization': {
        'camera_view': 'birds_eye',
        'show_point_cloud': True,
        'show_tracklet_boxes': True,
        'show_tracklet_points': True,
        'show_tracklet_in_center': True,
        'point_size': 0.2,
        'tracklet_point_size': 1.0,
        'figure_size': [15, 10],
        'max_range': 40.0,
    },
    'video': {
        'output_dir': 'output',
        'codec': 'mp4v',
        'fps': 10,
        'width': 1500,
        'height': 1000,
    },
}


def merge_config(defaults, overrides):
    """Deep merge `overrides` into a copy of `defaults`"""
    merged = copy.deepcopy(defaults)
    for key, value in (overrides or {}).items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = merge_config(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_config(config_path=None):
    """
    Load a YAML config file on top of DEFAULT_CONFIG

    A missing file is not an error: the defaults are returned.
    """
    if config_path is None or not os.path.exists(config_path):
        if config_path is not None:
            print(f"Configuration file '{config_path}' not found, using defaults.")
        return copy.deepcopy(DEFAULT_CONFIG)

    with open(config_path, 'r') as f:
        return merge_config(DEFAULT_CONFIG, yaml.safe_load(f))


def get_dataset_number(index, datasets=AVAILABLE_DATASETS):
    """Returns: KITTI drive number of the dataset at `index`"""
    return int(datasets[index].split('_drive_')[1])


def get_dataset_index(number, datasets=AVAILABLE_DATASETS):
    """Returns: position of drive `number` in `datasets`, 0 if unknown"""
    for i in range(len(datasets)):
        if get_dataset_number(i, datasets) == number:
            return i

    print(f"Data set {number} is not available, using data set {get_dataset_number(0, datasets)}.")
    return 0
