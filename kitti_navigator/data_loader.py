"""
Data loader module for KITTI dataset
Dataset provider interface and the file based KITTI raw backend
"""

import glob
import os
import zipfile
import xml.etree.ElementTree as ET
from abc import ABC, abstractmethod
from pathlib import Path

import numpy as np
import requests
from tqdm import tqdm

from kitti_navigator.config import DEFAULT_COLORS
from kitti_navigator.tracklet_processing import Pose, Tracklet


class LoadError(Exception):
    """Frame or tracklet data could not be produced"""


class DatasetProvider(ABC):
    """Data access used by NavigationState; implemented per dataset backend"""

    def __init__(self, colors=None):
        self.colors = dict(DEFAULT_COLORS if colors is None else colors)

    @abstractmethod
    def list_available_datasets(self):
        """Returns: ordered list of dataset ids"""

    @abstractmethod
    def frame_count(self, dataset_id):
        pass

    @abstractmethod
    def load_frame(self, dataset_id, frame_idx):
        """Returns: nx4 array [x, y, z, reflectance]; raises LoadError"""

    @abstractmethod
    def load_tracklets(self, dataset_id):
        """Returns: ordered list of Tracklet; raises LoadError"""

    def image_file(self, dataset_id, frame_idx):
        return None

    def color_for_object_type(self, object_type):
        """Returns: (r, g, b) in 0-255, white for unknown labels"""
        return tuple(self.colors.get(object_type, (255, 255, 255)))


class KITTIDataLoader:
    """KITTI raw sequence downloader and loader"""

    BASE_URL = "https://s3.eu-central-1.amazonaws.com/avg-kitti/raw_data"

    def __init__(self, sequence, base_dir='.', verbose=True):
        """
        Args:
            sequence: KITTI sequence name (e.g., '2011_09_26_drive_0048')
            base_dir: Directory holding the extracted '<date>' folders
        """
        self.sequence = sequence
        self.date = sequence.split('_drive_')[0]
        self.verbose = verbose

        # Paths
        self.base_dir = Path(base_dir)
        self.data_dir = self.base_dir / self.date
        self.sequence_dir = self.data_dir / f"{sequence}_sync"

        # File lists (populated by prepare)
        self.image_files = []
        self.point_files = []
        self.tracklet_file = None
        self._tracklets = None

    def prepare(self, download=False):
        """Locate the sequence files, downloading them first if asked to"""
        if download and not self.sequence_dir.exists():
            self.download_and_extract()

        self._load_file_paths()
        self._validate_data()

    def download_and_extract(self):
        self._log(f"Preparing KITTI sequence: {self.sequence}")
        self.base_dir.mkdir(parents=True, exist_ok=True)

        self._download_file(f"{self.sequence}/{self.sequence}_sync.zip")
        self._download_file(f"{self.sequence}/{self.sequence}_tracklets.zip")
        self._extract_zips()

    def _download_file(self, relative_path):
        url = f"{self.BASE_URL}/{relative_path}"
        filename = self.base_dir / relative_path.split('/')[-1]

        self._log(f"Downloading {filename.name}...")
        try:
            response = requests.get(url, stream=True, timeout=30)
            response.raise_for_status()
            total_size = int(response.headers.get('content-length', 0))

            with open(filename, 'wb') as f:
                with tqdm(total=total_size, unit='B', unit_scale=True, desc=filename.name,
                          disable=not self.verbose) as pbar:
                    for chunk in response.iter_content(chunk_size=8192):
                        f.write(chunk)
                        pbar.update(len(chunk))
        except requests.RequestException as e:
            # Drop the partial archive
            if filename.exists():
                filename.unlink()
            raise LoadError(f"Download of {url} failed: {e}") from e

    def _extract_zips(self):
        """Extract all zip files in the base directory"""
        for zip_file in glob.glob(str(self.base_dir / "*.zip")):
            self._log(f"Extracting {os.path.basename(zip_file)}...")
            try:
                with zipfile.ZipFile(zip_file, 'r') as zf:
                    zf.extractall(self.base_dir)
            except zipfile.BadZipFile as e:
                os.remove(zip_file)
                raise LoadError(f"Corrupt archive {os.path.basename(zip_file)}: {e}") from e
            os.remove(zip_file)

    def _load_file_paths(self):
        # Left color camera
        self.image_files = sorted(
            glob.glob(str(self.sequence_dir / "image_02" / "data" / "*.png"))
        )

        # Point clouds
        self.point_files = sorted(
            glob.glob(str(self.sequence_dir / "velodyne_points" / "data" / "*.bin"))
        )

        # Tracklets
        tracklet_file = self.sequence_dir / "tracklet_labels.xml"
        self.tracklet_file = str(tracklet_file) if tracklet_file.exists() else None

    def _validate_data(self):
        """Validate that required data exists"""
        errors = []

        if not self.point_files:
            errors.append("No point cloud files found")

        if not self.tracklet_file:
            errors.append(
                f"No tracklet file found. "
                f"Sequence '{self.sequence}' may not have tracklet annotations."
            )

        if errors:
            raise LoadError(
                f"Data validation failed for sequence '{self.sequence}':\n" +
                "\n".join(f"  - {e}" for e in errors)
            )

        if not self.image_files:
            self._log("! No camera images found, continuing without images")
        else:
            self._log(f"✓ Found {len(self.image_files)} frames")
        self._log(f"✓ Found {len(self.point_files)} point clouds")
        self._log("✓ Found tracklet file")

    @property
    def tracklets(self):
        if self._tracklets is None:
            self._tracklets = parse_tracklet_xml(self.tracklet_file)
        return self._tracklets

    def load_points(self, frame_idx):
        if frame_idx < 0 or frame_idx >= len(self.point_files):
            raise LoadError(
                f"Frame {frame_idx} out of range for '{self.sequence}' "
                f"({len(self.point_files)} frames)"
            )
        return self.load_velodyne_points(self.point_files[frame_idx])

    def _log(self, message):
        if self.verbose:
            print(message)

    @staticmethod
    def load_velodyne_points(file_path):
        """
        Load binary point cloud file from KITTI

        Returns:
            nx4 array of points [x, y, z, reflectance]
        """
        try:
            points = np.fromfile(file_path, dtype=np.float32)
        except OSError as e:
            raise LoadError(f"Cannot read point cloud {file_path}: {e}") from e

        if points.size % 4 != 0:
            raise LoadError(f"Corrupt point cloud {file_path}: {points.size} floats")
        return points.reshape(-1, 4)


class KittiDatasetProvider(DatasetProvider):
    """DatasetProvider over extracted KITTI raw sequences, one live sequence at a time"""

    def __init__(self, datasets, base_dir='.', download=False, colors=None, verbose=True):
        super().__init__(colors)
        self.datasets = list(datasets)
        self.base_dir = base_dir
        self.download = download
        self.verbose = verbose
        self._loader = None

    def list_available_datasets(self):
        return list(self.datasets)

    def frame_count(self, dataset_id):
        return len(self._get_loader(dataset_id).point_files)

    def load_frame(self, dataset_id, frame_idx):
        return self._get_loader(dataset_id).load_points(frame_idx)

    def load_tracklets(self, dataset_id):
        return self._get_loader(dataset_id).tracklets

    def image_file(self, dataset_id, frame_idx):
        image_files = self._get_loader(dataset_id).image_files
        if 0 <= frame_idx < len(image_files):
            return image_files[frame_idx]
        return None

    def _get_loader(self, dataset_id):
        if self._loader is None or self._loader.sequence != dataset_id:
            loader = KITTIDataLoader(dataset_id, self.base_dir, verbose=self.verbose)
            loader.prepare(download=self.download)
            self._loader = loader
        return self._loader


def _read_number(element, tag, cast=float, default=None):
    child = element.find(tag)
    if child is None or child.text is None:
        if default is None:
            raise LoadError(f"Missing <{tag}> in <{element.tag}>")
        return default
    try:
        return cast(child.text.strip())
    except ValueError as e:
        raise LoadError(f"Invalid <{tag}> value '{child.text}'") from e


def _parse_pose(item):
    return Pose(
        tx=_read_number(item, 'tx'),
        ty=_read_number(item, 'ty'),
        tz=_read_number(item, 'tz'),
        rx=_read_number(item, 'rx', default=0.0),
        ry=_read_number(item, 'ry', default=0.0),
        rz=_read_number(item, 'rz'),
        state=_read_number(item, 'state', int, default=0),
        occlusion=_read_number(item, 'occlusion', int, default=0),
        truncation=_read_number(item, 'truncation', int, default=0),
    )


def _items(element):
    """Returns: <item> children, checked against the <count> boost writes"""
    items = element.findall('item')
    if element.find('count') is not None:
        count = _read_number(element, 'count', int)
        if count != len(items):
            raise LoadError(f"<{element.tag}> declares {count} items, found {len(items)}")
    return items


def parse_tracklet_xml(tracklet_file):
    """
    Parse a KITTI raw tracklet_labels.xml

    Returns:
        List of Tracklet in file order
    """
    try:
        root = ET.parse(tracklet_file).getroot()
    except (OSError, ET.ParseError) as e:
        raise LoadError(f"Cannot parse tracklet file {tracklet_file}: {e}") from e

    tracklets_elem = root if root.tag == 'tracklets' else root.find('tracklets')
    if tracklets_elem is None:
        raise LoadError(f"No <tracklets> element in {tracklet_file}")

    tracklets = []
    for item in _items(tracklets_elem):
        object_type = item.findtext('objectType')
        if not object_type:
            raise LoadError(f"Tracklet without objectType in {tracklet_file}")

        poses_elem = item.find('poses')
        poses = () if poses_elem is None else tuple(_parse_pose(p) for p in _items(poses_elem))

        tracklets.append(Tracklet(
            object_type=object_type.strip(),
            h=_read_number(item, 'h'),
            w=_read_number(item, 'w'),
            l=_read_number(item, 'l'),
            first_frame=_read_number(item, 'first_frame', int),
            poses=poses,
        ))

    return tracklets
