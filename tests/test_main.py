"""Tests for the command-line entry point."""

import requests
import yaml

from main import main


def write_config(tmp_path, base_dir, datasets):
    path = tmp_path / "config.yaml"
    path.write_text(yaml.safe_dump({
        'data': {'base_dir': str(base_dir), 'datasets': datasets},
    }))
    return str(path)


def test_prints_selection(tmp_path, kitti_dir, capsys):
    config = write_config(tmp_path, kitti_dir, ['2011_09_26_drive_0001', '2011_09_26_drive_0005'])

    assert main(['--config', config, '--dataset', '1', '--frame', '1', '--tracklet', '5']) == 0

    out = capsys.readouterr().out
    assert "Using data set 1." in out
    assert "Data set: 1 of 2 [1]" in out
    assert "Frame: 2 of 3" in out
    assert 'Tracklet: 2 of 2 ("Pedestrian", 1 points)' in out


def test_default_dataset(tmp_path, kitti_dir, capsys):
    config = write_config(tmp_path, kitti_dir, ['2011_09_26_drive_0005', '2011_09_26_drive_0001'])

    assert main(['--config', config]) == 0
    assert "Using data set 5." in capsys.readouterr().out


def test_snapshot(tmp_path, kitti_dir):
    config = write_config(tmp_path, kitti_dir, ['2011_09_26_drive_0005'])
    output = tmp_path / "snapshot.png"

    assert main(['--config', config, '--view', 'top', '--output', str(output)]) == 0
    assert output.stat().st_size > 0


def test_missing_data(tmp_path, capsys):
    config = write_config(tmp_path, tmp_path / "empty", ['2011_09_26_drive_0001'])

    assert main(['--config', config]) == 1
    assert "Error loading data" in capsys.readouterr().out


def test_invalid_sequence_name(tmp_path, kitti_dir, capsys):
    config = write_config(tmp_path, kitti_dir, ['drive_one'])

    assert main(['--config', config]) == 1
    assert "Invalid KITTI sequence names" in capsys.readouterr().out


def test_failed_download(tmp_path, monkeypatch, capsys):
    def fake_get(url, **kwargs):
        raise requests.ConnectionError("network unreachable")

    monkeypatch.setattr(requests, 'get', fake_get)
    path = tmp_path / "config.yaml"
    path.write_text(yaml.safe_dump({
        'data': {'base_dir': str(tmp_path / "data"), 'download': True,
                 'datasets': ['2011_09_26_drive_0001']},
    }))

    assert main(['--config', str(path)]) == 1
    assert "Error loading data" in capsys.readouterr().out
