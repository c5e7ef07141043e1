from .pcd import PointAccumulator, to_pcd, save_to_pcd

__all__ = [
    "PointAccumulator",
    "to_pcd",
    "save_to_pcd",
]
