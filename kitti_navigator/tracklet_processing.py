"""
Tracklet processing module
Tracklet annotations, per-frame activity and point cloud cropping
"""

from dataclasses import dataclass

import numpy as np

from kitti_navigator.geometry import points_in_box, rigid_transform, to_box_frame


# Lift applied to cropped tracklet points so they float above the frame cloud
HOVER_OFFSET = (0.0, 0.0, 6.0)


class TrackletConsistencyError(AssertionError):
    """A pose was requested for a frame the tracklet does not cover"""


@dataclass(frozen=True)
class Pose:
    """Tracklet pose in one frame (LiDAR coordinates, box bottom center)"""
    tx: float
    ty: float
    tz: float
    rx: float = 0.0
    ry: float = 0.0
    rz: float = 0.0
    state: int = 0
    occlusion: int = 0
    truncation: int = 0


@dataclass(frozen=True)
class TrackletBox:
    """Oriented bounding box of a tracklet in a single frame"""
    object_type: str
    center: tuple
    yaw: float
    length: float
    width: float
    height: float

    @property
    def extents(self):
        return (self.length, self.width, self.height)


@dataclass(frozen=True)
class Tracklet:
    object_type: str
    h: float
    w: float
    l: float
    first_frame: int
    poses: tuple = ()

    @property
    def n_frames(self):
        return len(self.poses)

    @property
    def last_frame(self):
        return self.first_frame + len(self.poses) - 1

    def is_active(self, frame_idx):
        return self.first_frame <= frame_idx <= self.last_frame

    def pose_at(self, frame_idx):
        pose_number = frame_idx - self.first_frame
        if pose_number < 0 or pose_number >= len(self.poses):
            raise TrackletConsistencyError(
                f"{self.object_type} tracklet covers frames {self.first_frame}-{self.last_frame}, "
                f"no pose for frame {frame_idx}"
            )
        return self.poses[pose_number]

    def box_at(self, frame_idx):
        """Box center is lifted by h/2 since poses sit on the box bottom"""
        pose = self.pose_at(frame_idx)
        return TrackletBox(
            object_type=self.object_type,
            center=(pose.tx, pose.ty, pose.tz + self.h / 2.0),
            yaw=pose.rz,
            length=self.l,
            width=self.w,
            height=self.h,
        )


def active_tracklets(tracklets, frame_idx):
    """Returns: tracklets covering frame_idx, in input order"""
    return [tracklet for tracklet in tracklets if tracklet.is_active(frame_idx)]


class TrackletPointCropper:
    """Cut tracklet points out of a frame cloud and move them into display space"""

    def __init__(self, hover_offset=HOVER_OFFSET):
        self.hover_offset = tuple(float(v) for v in hover_offset)

    def crop(self, points, tracklet, frame_idx):
        """
        Args:
            points: nx4 frame cloud [x, y, z, reflectance]
            tracklet: Tracklet active in frame_idx
            frame_idx: Frame the cloud belongs to

        Returns:
            Rows of `points` inside the tracklet box, in frame coordinates
        """
        box = tracklet.box_at(frame_idx)
        mask = points_in_box(points, box.center, box.yaw, box.extents)
        return np.asarray(points)[mask]

    def hover_view(self, points, tracklet, frame_idx):
        cropped = self.crop(points, tracklet, frame_idx)
        return rigid_transform(cropped, self.hover_offset, 0.0)

    def centered_view(self, points, tracklet, frame_idx):
        """Cropped points in the box frame: box centered at origin, length along X"""
        box = tracklet.box_at(frame_idx)
        cropped = self.crop(points, tracklet, frame_idx)
        return to_box_frame(cropped, box.center, box.yaw)

    def crop_all(self, points, tracklets, frame_idx):
        """Returns: hover clouds index aligned with `tracklets`"""
        return [self.hover_view(points, tracklet, frame_idx) for tracklet in tracklets]
