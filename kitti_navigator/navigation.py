"""
Navigation module
Dataset / frame / tracklet selection and the derived point clouds to display
"""

import dataclasses
from dataclasses import dataclass
from typing import Optional

import numpy as np

from kitti_navigator.config import get_dataset_number
from kitti_navigator.data_loader import LoadError
from kitti_navigator.tracklet_processing import TrackletPointCropper, active_tracklets
from kitti_navigator.utils import clamp


@dataclass(frozen=True)
class DatasetHandle:
    """The one dataset currently loaded"""
    dataset_id: str
    frame_count: int
    tracklets: tuple


@dataclass(frozen=True, eq=False)
class FrameView:
    """
    Everything the renderer needs for the current selection.

    Replaced as a whole on every transition. `cropped_clouds[i]` always
    belongs to `active_tracklets[i]`.
    """
    dataset_index: int
    frame_index: int
    tracklet_index: int
    dataset: DatasetHandle
    point_cloud: np.ndarray
    image_file: Optional[str]
    active_tracklets: tuple
    cropped_clouds: tuple
    centered_cloud: Optional[np.ndarray]

    @property
    def boxes(self):
        """Returns: TrackletBox per active tracklet (center, yaw, l/w/h, label)"""
        return [tracklet.box_at(self.frame_index) for tracklet in self.active_tracklets]

    @property
    def selected_tracklet(self):
        if not self.active_tracklets:
            return None
        return self.active_tracklets[self.tracklet_index]


class NavigationState:
    """
    Keeps (dataset_index, frame_index, tracklet_index) consistent with the
    loaded data. Requests are clamped into range; a request equal to the
    current value is a no-op. A LoadError from the provider leaves the
    previous view in place.
    """

    def __init__(self, provider, dataset_index=0, cropper=None, verbose=False):
        self.provider = provider
        self.cropper = cropper or TrackletPointCropper()
        self.verbose = verbose

        self.datasets = list(provider.list_available_datasets())
        if not self.datasets:
            raise LoadError("Dataset provider lists no datasets")

        index = clamp(dataset_index, 0, len(self.datasets) - 1)
        dataset = self._open_dataset(index)
        self.view = self._build_view(index, dataset, 0, 0)

    # Current selection

    @property
    def dataset_index(self):
        return self.view.dataset_index

    @property
    def frame_index(self):
        return self.view.frame_index

    @property
    def tracklet_index(self):
        return self.view.tracklet_index

    @property
    def dataset_count(self):
        return len(self.datasets)

    @property
    def frame_count(self):
        return self.view.dataset.frame_count

    @property
    def active_count(self):
        return len(self.view.active_tracklets)

    @property
    def dataset_range(self):
        return 0, self.dataset_count - 1

    @property
    def frame_range(self):
        return 0, self.frame_count - 1

    @property
    def tracklet_range(self):
        return 0, max(self.active_count - 1, 0)

    # Transitions

    def request_dataset(self, value):
        if value == self.dataset_index:
            return self.view

        index = clamp(value, *self.dataset_range)
        dataset = self._open_dataset(index)
        frame_index = clamp(self.frame_index, 0, dataset.frame_count - 1)
        self.view = self._build_view(index, dataset, frame_index, self.tracklet_index)
        return self.view

    def request_frame(self, value):
        if value == self.frame_index:
            return self.view

        frame_index = clamp(value, *self.frame_range)
        self.view = self._build_view(
            self.dataset_index, self.view.dataset, frame_index, self.tracklet_index
        )
        return self.view

    def request_tracklet(self, value):
        if value == self.tracklet_index:
            return self.view

        tracklet_index = clamp(value, *self.tracklet_range)
        self.view = dataclasses.replace(
            self.view,
            tracklet_index=tracklet_index,
            centered_cloud=self._centered_cloud(
                self.view.point_cloud, self.view.active_tracklets,
                self.frame_index, tracklet_index
            ),
        )
        return self.view

    def next_frame(self):
        return self.request_frame(self.frame_index + 1)

    def previous_frame(self):
        return self.request_frame(self.frame_index - 1)

    # Status text

    def dataset_label(self):
        dataset_id = self.view.dataset.dataset_id
        try:
            number = get_dataset_number(self.dataset_index, self.datasets)
        except (IndexError, ValueError):
            number = dataset_id
        return f"Data set: {self.dataset_index + 1} of {self.dataset_count} [{number}]"

    def frame_label(self):
        return f"Frame: {self.frame_index + 1} of {self.frame_count}"

    def tracklet_label(self):
        if not self.active_count:
            return "Tracklet: 0 of 0"

        tracklet = self.view.selected_tracklet
        n_points = len(self.view.cropped_clouds[self.tracklet_index])
        return (
            f"Tracklet: {self.tracklet_index + 1} of {self.active_count} "
            f"(\"{tracklet.object_type}\", {n_points} points)"
        )

    # Loading

    def _open_dataset(self, dataset_index):
        dataset_id = self.datasets[dataset_index]
        frame_count = self.provider.frame_count(dataset_id)
        if frame_count < 1:
            raise LoadError(f"Dataset '{dataset_id}' has no frames")

        tracklets = tuple(self.provider.load_tracklets(dataset_id))
        return DatasetHandle(dataset_id, frame_count, tracklets)

    def _build_view(self, dataset_index, dataset, frame_index, tracklet_index):
        points = self.provider.load_frame(dataset.dataset_id, frame_index)
        if points is None:
            raise LoadError(f"No point cloud for frame {frame_index} of '{dataset.dataset_id}'")
        points = np.asarray(points)
        image_file = self.provider.image_file(dataset.dataset_id, frame_index)
        if self.verbose:
            print(f"loaded: {image_file or dataset.dataset_id} (frame {frame_index})")

        active = tuple(active_tracklets(dataset.tracklets, frame_index))
        cropped = tuple(self.cropper.crop_all(points, active, frame_index))
        tracklet_index = clamp(tracklet_index, 0, len(active) - 1)

        return FrameView(
            dataset_index=dataset_index,
            frame_index=frame_index,
            tracklet_index=tracklet_index,
            dataset=dataset,
            point_cloud=points,
            image_file=image_file,
            active_tracklets=active,
            cropped_clouds=cropped,
            centered_cloud=self._centered_cloud(points, active, frame_index, tracklet_index),
        )

    def _centered_cloud(self, points, active, frame_index, tracklet_index):
        if not active:
            return None
        return self.cropper.centered_view(points, active[tracklet_index], frame_index)
