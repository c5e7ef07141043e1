"""
Accumulation of decoded points and PCD export.
"""
from pathlib import Path
from typing import List, Union

import numpy as np
import open3d as o3d

from lidar_decoder.lidar.core.decoder import POINT_COLUMNS, empty_points


class PointAccumulator:
    """Caller-owned collection of per-packet (N, 4) point arrays."""

    def __init__(self):
        self.chunks: List[np.ndarray] = []
        self.count = 0

    def append(self, points: np.ndarray) -> None:
        if len(points) == 0:
            return
        self.chunks.append(points)
        self.count += len(points)

    def clear(self) -> None:
        self.chunks = []
        self.count = 0

    def __len__(self) -> int:
        return self.count

    def to_points(self) -> np.ndarray:
        """All accumulated points as one float32 (N, 4) array."""
        if not self.chunks:
            return empty_points()
        return np.concatenate(self.chunks)

    def to_pcd(self, device: str = "CPU:0") -> o3d.t.geometry.PointCloud:
        return to_pcd(self.to_points(), device)


def to_pcd(points: np.ndarray, device: str = "CPU:0") -> o3d.t.geometry.PointCloud:
    """Converts (N, 4) x, y, z, intensity points to a tensor-based Open3D PointCloud."""
    o3d_device = o3d.core.Device(device)
    pcd = o3d.t.geometry.PointCloud(o3d_device)
    if points.size == 0:
        return pcd

    pcd.point.positions = o3d.core.Tensor(points[:, 0:3].astype(np.float32), device=o3d_device)
    if points.shape[1] >= len(POINT_COLUMNS):
        intensity = points[:, 3].reshape(-1, 1).astype(np.float32)
        pcd.point.intensity = o3d.core.Tensor(intensity, device=o3d_device)
    return pcd


def save_to_pcd(points: np.ndarray, output_path: Union[str, Path], binary: bool = False) -> bool:
    """Saves (N, 4) points to a PCD file, keeping intensity as a field."""
    return o3d.t.io.write_point_cloud(str(output_path), to_pcd(points), write_ascii=not binary)
