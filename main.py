#!/usr/bin/env python3
"""
KITTI Tracklet Navigator - Main Script
Browse KITTI raw sequences frame by frame with their annotated tracklets
"""

import argparse
import os
import sys
import time

import cv2
import matplotlib
matplotlib.use('Agg')  # Use non-interactive backend
from tqdm import tqdm

from kitti_navigator.config import get_dataset_index, get_dataset_number, load_config
from kitti_navigator.data_loader import KittiDatasetProvider, LoadError
from kitti_navigator.navigation import NavigationState
from kitti_navigator.tracklet_processing import TrackletPointCropper
from kitti_navigator.utils import clamp, format_time, setup_output_dir, validate_sequence_format
from kitti_navigator.visualization import CAMERA_VIEWS, Visualizer


def parse_arguments(argv=None):
    parser = argparse.ArgumentParser(
        description='Navigate KITTI raw point clouds and tracklet annotations')

    parser.add_argument('--config', type=str, default='config.yaml',
                        help='Path to configuration file')

    parser.add_argument('--dataset', type=int, default=None,
                        help='KITTI drive number of the data set to use (e.g., 48)')

    parser.add_argument('--frame', type=int, default=0, help='Frame to select')

    parser.add_argument('--tracklet', type=int, default=0,
                        help='Tracklet to select among those visible in the frame')

    parser.add_argument('--view', type=str, choices=list(CAMERA_VIEWS), default=None,
                        help='Camera preset for rendering')

    parser.add_argument('--output', type=str, default=None,
                        help='Write a snapshot of the selection to this image file')

    parser.add_argument('--walk', action='store_true',
                        help='Render every frame of the data set into a video')

    parser.add_argument('--fps', type=int, default=None, help='Video fps between 1 and 20')

    return parser.parse_args(argv)


def print_status(state):
    print(state.dataset_label())
    print(state.frame_label())
    print(state.tracklet_label())


def walk_dataset(state, visualizer, config, fps):
    """Render all frames of the current data set into an mp4 file"""
    video_config = config['video']
    output_dir = setup_output_dir(video_config['output_dir'])
    dataset_id = state.view.dataset.dataset_id
    output_path = os.path.join(output_dir, f"{dataset_id}_tracklets.mp4")

    if os.path.exists(output_path):
        os.remove(output_path)
        print(f"Existing {os.path.basename(output_path)} has been replaced.")

    size = (video_config['width'], video_config['height'])
    fourcc = cv2.VideoWriter_fourcc(*video_config['codec'])
    out = cv2.VideoWriter(output_path, fourcc, fps, size)

    start = time.time()
    for frame_idx in tqdm(range(state.frame_count)):
        view = state.request_frame(frame_idx)
        labels = (state.frame_label(), state.tracklet_label())
        frame = visualizer.render(view, labels, target_size=size)
        out.write(cv2.cvtColor(frame, cv2.COLOR_RGB2BGR))
    out.release()

    print(f"✓ Video saved to: {output_path} ({format_time(time.time() - start)})")


def main(argv=None):
    args = parse_arguments(argv)
    config = load_config(args.config)
    data_config = config['data']
    datasets = data_config['datasets']

    if not datasets:
        print("Error: No data sets configured.")
        return 1

    invalid = [d for d in datasets if not validate_sequence_format(d)]
    if invalid:
        print(f"Error: Invalid KITTI sequence names in configuration: {', '.join(invalid)}")
        return 1

    if args.dataset is not None:
        print(f"Using data set {args.dataset}.")
        dataset_index = get_dataset_index(args.dataset, datasets)
    else:
        dataset_index = clamp(data_config['default_dataset'], 0, len(datasets) - 1)
        print("Data set was not specified.")
        print(f"Using data set {get_dataset_number(dataset_index, datasets)}.")

    provider = KittiDatasetProvider(
        datasets,
        base_dir=data_config['base_dir'],
        download=data_config['download'],
        colors=config['colors'],
    )

    try:
        state = NavigationState(
            provider,
            dataset_index=dataset_index,
            cropper=TrackletPointCropper(config['navigation']['hover_offset']),
        )
        state.request_frame(args.frame)
        state.request_tracklet(args.tracklet)
    except LoadError as e:
        print(f"Error loading data: {e}")
        return 1

    print(f"\n{'='*60}")
    print_status(state)
    print(f"{'='*60}\n")

    if not args.output and not args.walk:
        return 0

    visualizer = Visualizer(config, provider.color_for_object_type)
    if args.view:
        visualizer.set_camera_view(args.view)

    if args.output:
        labels = (state.dataset_label(), state.frame_label(), state.tracklet_label())
        image = visualizer.render(state.view, labels)
        cv2.imwrite(args.output, cv2.cvtColor(image, cv2.COLOR_RGB2BGR))
        print(f"✓ Snapshot saved to: {args.output}")

    if args.walk:
        fps = max(1, min(args.fps, 20)) if args.fps else config['video']['fps']
        try:
            walk_dataset(state, visualizer, config, fps)
        except LoadError as e:
            print(f"Error loading data: {e}")
            return 1

    return 0


if __name__ == '__main__':
    sys.exit(main())
