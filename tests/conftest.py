"""Shared fixtures: an in-memory dataset provider and a synthetic KITTI raw tree."""

import matplotlib
import numpy as np
import pytest

from kitti_navigator.data_loader import DatasetProvider, LoadError
from kitti_navigator.tracklet_processing import Pose, Tracklet

matplotlib.use('Agg')


def make_cloud(frame_idx=0):
    """Frame cloud: 3 points in the car box, 1 outside it, 1 in the pedestrian box, 1 above it."""
    reflectance = frame_idx / 100.0
    return np.array([
        [0.0, 0.0, 1.0, reflectance],
        [1.0, 0.0, 1.0, reflectance],
        [3.0, 0.0, 1.0, reflectance],
        [2.0, 1.0, 2.0, reflectance],
        [10.0, 5.0, 0.9, reflectance],
        [10.0, 5.0, 3.0, reflectance],
    ], dtype=np.float32)


def make_tracklets():
    car = Tracklet('Car', h=2.0, w=2.0, l=4.0, first_frame=0,
                   poses=tuple(Pose(0.0, 0.0, 0.0) for _ in range(20)))
    pedestrian = Tracklet('Pedestrian', h=1.8, w=0.6, l=0.8, first_frame=10,
                          poses=tuple(Pose(10.0, 5.0, 0.0) for _ in range(5)))
    truck = Tracklet('Truck', h=3.0, w=2.5, l=8.0, first_frame=30,
                     poses=tuple(Pose(-10.0, 0.0, 0.0, rz=np.pi / 2) for _ in range(10)))
    return [car, pedestrian, truck]


class InMemoryProvider(DatasetProvider):
    def __init__(self):
        super().__init__()
        self.data = {
            '2011_09_26_drive_0001': (50, make_tracklets()),
            '2011_09_26_drive_0002': (10, []),
        }
        self.broken_frames = set()
        self.broken_tracklets = set()
        self.frame_loads = 0

    def list_available_datasets(self):
        return list(self.data)

    def frame_count(self, dataset_id):
        return self.data[dataset_id][0]

    def load_frame(self, dataset_id, frame_idx):
        if (dataset_id, frame_idx) in self.broken_frames:
            raise LoadError(f"frame {frame_idx} is corrupt")
        self.frame_loads += 1
        return make_cloud(frame_idx)

    def load_tracklets(self, dataset_id):
        if dataset_id in self.broken_tracklets:
            raise LoadError(f"tracklets of {dataset_id} are corrupt")
        return self.data[dataset_id][1]

    def image_file(self, dataset_id, frame_idx):
        return f"{dataset_id}/image_02/data/{frame_idx:010d}.png"


@pytest.fixture
def provider():
    return InMemoryProvider()


TRACKLET_XML = """<?xml version="1.0" encoding="UTF-8" standalone="yes" ?>
<!DOCTYPE boost_serialization>
<boost_serialization signature="serialization::archive" version="9">
<tracklets class_id="0" tracking_level="0" version="0">
  <count>2</count>
  <item_version>1</item_version>
  <item class_id="1" tracking_level="0" version="1">
    <objectType>Car</objectType>
    <h>2.0</h>
    <w>2.0</w>
    <l>4.0</l>
    <first_frame>0</first_frame>
    <poses class_id="2" tracking_level="0" version="0">
      <count>2</count>
      <item_version>2</item_version>
      <item class_id="3" tracking_level="0" version="2">
        <tx>0.0</tx><ty>0.0</ty><tz>0.0</tz>
        <rx>0.0</rx><ry>0.0</ry><rz>0.0</rz>
        <state>1</state><occlusion>0</occlusion><occlusion_kf>0</occlusion_kf>
        <truncation>0</truncation><amt_occlusion>0.0</amt_occlusion>
      </item>
      <item>
        <tx>0.5</tx><ty>0.0</ty><tz>0.0</tz>
        <rx>0.0</rx><ry>0.0</ry><rz>0.1</rz>
        <state>2</state><occlusion>1</occlusion><occlusion_kf>0</occlusion_kf>
        <truncation>2</truncation><amt_occlusion>0.0</amt_occlusion>
      </item>
    </poses>
    <finished>1</finished>
  </item>
  <item>
    <objectType>Pedestrian</objectType>
    <h>1.8</h>
    <w>0.6</w>
    <l>0.8</l>
    <first_frame>1</first_frame>
    <poses>
      <count>1</count>
      <item_version>2</item_version>
      <item>
        <tx>10.0</tx><ty>5.0</ty><tz>0.0</tz>
        <rx>0.0</rx><ry>0.0</ry><rz>0.0</rz>
        <state>1</state><occlusion>0</occlusion><occlusion_kf>0</occlusion_kf>
        <truncation>0</truncation><amt_occlusion>0.0</amt_occlusion>
      </item>
    </poses>
    <finished>1</finished>
  </item>
</tracklets>
</boost_serialization>
"""


def write_sequence(base_dir, sequence, n_frames=3, tracklet_xml=TRACKLET_XML, images=True):
    date = sequence.split('_drive_')[0]
    sequence_dir = base_dir / date / f"{sequence}_sync"
    velo_dir = sequence_dir / "velodyne_points" / "data"
    velo_dir.mkdir(parents=True)
    for i in range(n_frames):
        make_cloud(i).tofile(velo_dir / f"{i:010d}.bin")

    if images:
        image_dir = sequence_dir / "image_02" / "data"
        image_dir.mkdir(parents=True)
        for i in range(n_frames):
            (image_dir / f"{i:010d}.png").write_bytes(b"")

    if tracklet_xml is not None:
        (sequence_dir / "tracklet_labels.xml").write_text(tracklet_xml)
    return sequence_dir


@pytest.fixture
def kitti_dir(tmp_path):
    base_dir = tmp_path / "data"
    write_sequence(base_dir, '2011_09_26_drive_0001', n_frames=3)
    write_sequence(base_dir, '2011_09_26_drive_0005', n_frames=2, images=False)
    return base_dir
