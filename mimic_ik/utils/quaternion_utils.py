"""
四元数与齐次变换工具函数

四元数统一使用 [w, x, y, z] 顺序；scipy 使用 [x, y, z, w]，在此处做转换。
"""
import numpy as np
from scipy.spatial.transform import Rotation as R
from typing import Union

ArrayLike = Union[np.ndarray, list, tuple]


def quaternion_to_rotation_matrix(quaternion: ArrayLike) -> np.ndarray:
    """
    将四元数转换为旋转矩阵

    :param quaternion: 四元数，格式为 [w, x, y, z]
    :return: 3x3 旋转矩阵
    """
    quaternion = np.asarray(quaternion, dtype=np.float64)
    if quaternion.shape != (4,):
        raise ValueError(f"Quaternion must be a 4-element array, got shape {quaternion.shape}")

    norm = np.linalg.norm(quaternion)
    if norm < 1e-10:
        raise ValueError(f"Quaternion norm too small: {norm}, cannot normalize")
    w, x, y, z = quaternion / norm

    return np.array([
        [1 - 2 * (y * y + z * z),     2 * (x * y - w * z),     2 * (x * z + w * y)],
        [    2 * (x * y + w * z), 1 - 2 * (x * x + z * z),     2 * (y * z - w * x)],
        [    2 * (x * z - w * y),     2 * (y * z + w * x), 1 - 2 * (x * x + y * y)]
    ], dtype=np.float64)


def rotation_matrix_to_quaternion(rotation: np.ndarray) -> np.ndarray:
    """3x3 旋转矩阵 -> [w, x, y, z]"""
    x, y, z, w = R.from_matrix(np.asarray(rotation, dtype=np.float64)).as_quat()
    return np.array([w, x, y, z], dtype=np.float64)


def axis_angle_to_rotation_matrix(axis: np.ndarray, angle: float) -> np.ndarray:
    """
    绕单位轴 axis 旋转 angle 弧度的旋转矩阵（先构造四元数，再转为矩阵）
    """
    half_theta = angle / 2.0
    xyz = np.asarray(axis, dtype=np.float64) * np.sin(half_theta)
    quat = np.array([np.cos(half_theta), xyz[0], xyz[1], xyz[2]])
    return quaternion_to_rotation_matrix(quat)


def make_frame(position: ArrayLike, quaternion: ArrayLike = (1.0, 0.0, 0.0, 0.0)) -> np.ndarray:
    """
    由位置和四元数组装 4x4 齐次变换矩阵

    :param position: 位置 [x, y, z]
    :param quaternion: 姿态 [w, x, y, z]
    """
    frame = np.identity(4, dtype=np.float64)
    frame[:3, :3] = quaternion_to_rotation_matrix(quaternion)
    frame[:3, 3] = np.asarray(position, dtype=np.float64)
    return frame


def is_valid_frame(frame: np.ndarray) -> bool:
    """
    目标帧必须是有限值的 4x4 齐次变换：
    旋转块正交且行列式为正（排除镜像和退化矩阵），最后一行为 [0, 0, 0, 1]
    """
    frame = np.asarray(frame, dtype=np.float64)
    if frame.shape != (4, 4) or not np.all(np.isfinite(frame)):
        return False
    rotation = frame[:3, :3]
    return bool(np.linalg.det(rotation) > 0.0
                and np.allclose(rotation @ rotation.T, np.identity(3), atol=1e-6)
                and np.allclose(frame[3], [0.0, 0.0, 0.0, 1.0]))
