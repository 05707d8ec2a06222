"""
Utility functions
Helper functions for index handling and file management
"""

import os


def setup_output_dir(output_dir):
    os.makedirs(output_dir, exist_ok=True)
    return os.path.abspath(output_dir)


def clamp(value, lower, upper):
    """Clamp value into [lower, upper]; an empty range (upper < lower) gives lower"""
    return max(lower, min(value, upper)) if upper >= lower else lower


def validate_sequence_format(sequence):
    """
    Validate KITTI sequence name format
    """
    # Expected format: YYYY_MM_DD_drive_XXXX
    parts = sequence.split('_')

    if len(parts) != 5:
        return False

    if parts[3] != 'drive':
        return False

    try:
        # Check date parts are numeric
        int(parts[0])  # year
        int(parts[1])  # month
        int(parts[2])  # day
        int(parts[4])  # drive number
        return True
    except ValueError:
        return False


def format_time(seconds):
    """
    Format seconds into human-readable time string
    """
    if seconds < 60:
        return f"{seconds:.1f}s"
    elif seconds < 3600:
        minutes = int(seconds // 60)
        secs = int(seconds % 60)
        return f"{minutes}m {secs}s"
    else:
        hours = int(seconds // 3600)
        minutes = int((seconds % 3600) // 60)
        return f"{hours}h {minutes}m"
