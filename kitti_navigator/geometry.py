"""
Geometry module
Rigid transforms (translation + yaw) and oriented bounding box helpers
"""

import numpy as np


def rotation_z(angle):
    """Returns: 3x3 rotation matrix for a rotation of `angle` radians about Z"""
    c, s = np.cos(angle), np.sin(angle)
    return np.array([
        [c, -s, 0.0],
        [s, c, 0.0],
        [0.0, 0.0, 1.0]
    ])


def rigid_transform(points, translation=(0.0, 0.0, 0.0), rotation=0.0):
    """
    Apply point' = Rz(rotation) @ point + translation

    Args:
        points: single point (3,) / (4,) or nx3 / nx4 array; columns past
            the third (e.g. reflectance) are carried through untouched
        translation: 3-vector
        rotation: yaw angle in radians

    Returns:
        New array with the same shape as `points`
    """
    result = np.array(points, dtype=np.float64)
    rot_mat = rotation_z(rotation)
    result[..., :3] = result[..., :3] @ rot_mat.T + np.asarray(translation, dtype=np.float64)
    return result


def transform_pose(center, yaw, translation=(0.0, 0.0, 0.0), rotation=0.0):
    """Transform a pose (center + yaw) the same way rigid_transform moves a point"""
    new_center = rigid_transform(center, translation, rotation)
    return new_center, yaw + rotation


def to_box_frame(points, center, yaw):
    """Express frame points in the box frame: translate by -center, then rotate by -yaw"""
    shifted = rigid_transform(points, -np.asarray(center, dtype=np.float64), 0.0)
    return rigid_transform(shifted, (0.0, 0.0, 0.0), -yaw)


def points_in_box(points, center, yaw, extents):
    """
    Returns: Boolean mask of points inside an oriented box

    The box is axis aligned in its own yawed frame. `extents` are the full
    (length, width, height) along the local X, Y and Z axes. The boundary is
    inclusive: a point exactly on a face counts as inside.
    """
    points = np.asarray(points)
    if points.ndim == 1:
        points = points[np.newaxis, :]
    if len(points) == 0:
        return np.zeros(0, dtype=bool)

    local = to_box_frame(points[:, :3], center, yaw)
    half = np.asarray(extents, dtype=np.float64) / 2.0
    return np.all(np.abs(local) <= half, axis=1)


def box_corners(center, yaw, extents):
    """Returns: 8x3 array of corner coordinates, bottom face first"""
    l, w, h = extents
    x_corners = [l/2, l/2, -l/2, -l/2, l/2, l/2, -l/2, -l/2]
    y_corners = [w/2, -w/2, -w/2, w/2, w/2, -w/2, -w/2, w/2]
    z_corners = [-h/2, -h/2, -h/2, -h/2, h/2, h/2, h/2, h/2]
    corners = np.array([x_corners, y_corners, z_corners]).T

    return rigid_transform(corners, center, yaw)
