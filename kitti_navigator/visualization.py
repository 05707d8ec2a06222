"""
Visualization module
Renders a navigation FrameView (point cloud, boxes, tracklet clouds, camera image)
"""

import os

import cv2
import matplotlib.pyplot as plt
import numpy as np

from kitti_navigator.geometry import box_corners


# Camera position and focal point per named view
CAMERA_VIEWS = {
    'front': ((-100, 0, 0), (-17, 9.5, -9.5)),
    'eye_level': ((-100, 0, 20), (-17, 9.5, -9.5)),
    'birds_eye': ((-100, 10, 30), (-17, 9.5, -9.5)),
    'left_pers': ((22, 150, 57), (1, -57, 8)),
    'right_pers': ((-22, -150, 57), (1, -57, 8)),
    'top': ((1, 29, -110), (21, 6, 147)),
}

LAYERS = ('show_point_cloud', 'show_tracklet_boxes', 'show_tracklet_points', 'show_tracklet_in_center')

# Box edges as corner index pairs: bottom face, top face, verticals
BOX_EDGES = [(i, (i + 1) % 4) for i in range(4)] + \
            [(4 + i, 4 + (i + 1) % 4) for i in range(4)] + \
            [(i, i + 4) for i in range(4)]

CENTERED_COLOR = (0, 255, 0)


def view_angles(view_name):
    """Returns: (elevation, azimuth) in degrees looking from the camera at its focal point"""
    position, focal_point = CAMERA_VIEWS[view_name]
    dx, dy, dz = np.subtract(position, focal_point)
    azimuth = np.degrees(np.arctan2(dy, dx))
    elevation = np.degrees(np.arctan2(dz, np.hypot(dx, dy)))
    return float(elevation), float(azimuth)


class Visualizer:
    """Draw the current selection with matplotlib"""

    def __init__(self, config, color_for_object_type):
        """
        Args:
            config: Configuration dictionary
            color_for_object_type: callable label -> (r, g, b)
        """
        self.vis_config = config['visualization']
        self.color_for_object_type = color_for_object_type
        self.layers = {name: bool(self.vis_config[name]) for name in LAYERS}
        self.camera_view = self.vis_config['camera_view']
        if self.camera_view not in CAMERA_VIEWS:
            raise ValueError(f"Unknown camera view '{self.camera_view}'")

    def set_layer(self, name, visible):
        if name not in self.layers:
            raise KeyError(f"Unknown layer '{name}'")
        self.layers[name] = bool(visible)

    def set_camera_view(self, view_name):
        if view_name not in CAMERA_VIEWS:
            raise ValueError(f"Unknown camera view '{view_name}'")
        self.camera_view = view_name

    def render(self, view, labels=(), target_size=None):
        """
        Render a FrameView

        Args:
            view: FrameView from NavigationState
            labels: status lines shown as the figure title
            target_size: optional (width, height) of the returned image

        Returns:
            HxWx3 RGB uint8 image
        """
        img = self._read_image(view.image_file)
        fig = plt.figure(figsize=tuple(self.vis_config['figure_size']))
        fig.patch.set_facecolor('black')

        ax = fig.add_subplot(1 if img is None else 2, 1, 1, projection='3d')
        self._draw_scene(ax, view)

        if img is not None:
            img_ax = fig.add_subplot(2, 1, 2)
            img_ax.imshow(img)
            img_ax.axis('off')

        if labels:
            fig.suptitle("\n".join(labels), color='white', fontsize=12)

        # Convert to numpy array
        fig.canvas.draw()
        width, height = fig.canvas.get_width_height()
        image = np.frombuffer(fig.canvas.buffer_rgba(), dtype=np.uint8)
        image = image.reshape((height, width, 4))[:, :, :3].copy()
        plt.close(fig)

        if target_size is not None and image.shape[:2] != (target_size[1], target_size[0]):
            image = cv2.resize(image, tuple(target_size), interpolation=cv2.INTER_LINEAR)
        return image

    def _draw_scene(self, ax, view):
        ax.set_facecolor('black')
        ax.set_axis_off()
        elevation, azimuth = view_angles(self.camera_view)
        ax.view_init(elev=elevation, azim=azimuth)

        max_range = self.vis_config['max_range']
        ax.set_xlim(-max_range, max_range)
        ax.set_ylim(-max_range, max_range)
        ax.set_zlim(-max_range / 4, max_range / 4)

        if self.layers['show_point_cloud'] and len(view.point_cloud):
            points = view.point_cloud
            in_range = (np.abs(points[:, 0]) <= max_range) & (np.abs(points[:, 1]) <= max_range)
            points = points[in_range]
            ax.scatter(points[:, 0], points[:, 1], points[:, 2],
                       s=self.vis_config['point_size'], c='white', marker='.', linewidths=0)

        for tracklet, box, cloud in zip(view.active_tracklets, view.boxes, view.cropped_clouds):
            color = np.array(self.color_for_object_type(tracklet.object_type)) / 255.0

            if self.layers['show_tracklet_boxes']:
                self._draw_box(ax, box_corners(box.center, box.yaw, box.extents), color)

            if self.layers['show_tracklet_points'] and len(cloud):
                ax.scatter(cloud[:, 0], cloud[:, 1], cloud[:, 2],
                           s=self.vis_config['tracklet_point_size'], color=color, marker='.', linewidths=0)

        centered = view.centered_cloud
        if self.layers['show_tracklet_in_center'] and centered is not None and len(centered):
            ax.scatter(centered[:, 0], centered[:, 1], centered[:, 2],
                       s=self.vis_config['tracklet_point_size'], color=np.array(CENTERED_COLOR) / 255.0,
                       marker='.', linewidths=0)

    @staticmethod
    def _read_image(image_file):
        """Returns: RGB camera image, None when there is no readable file"""
        if image_file is None or not os.path.exists(image_file):
            return None
        img = cv2.imread(image_file)
        if img is None:
            return None
        return cv2.cvtColor(img, cv2.COLOR_BGR2RGB)

    @staticmethod
    def _draw_box(ax, corners, color):
        for i, j in BOX_EDGES:
            ax.plot(*zip(corners[i], corners[j]), color=color, linewidth=1)
