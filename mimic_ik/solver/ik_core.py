"""
IK核心数学：正运动学、雅可比矩阵、位姿误差
"""
import numpy as np
from scipy.spatial.transform import Rotation as R
from typing import List

from mimic_ik.model.chain import Chain


def _check_length(chain: Chain, q_full: np.ndarray) -> np.ndarray:
    q_full = np.asarray(q_full, dtype=np.float64)
    if q_full.shape != (chain.num_joints,):
        raise ValueError(f"Expected joint vector of length {chain.num_joints}, got shape {q_full.shape}")
    return q_full


def compute_joint_frames(chain: Chain, q_full: np.ndarray) -> List[np.ndarray]:
    """
    计算链中每一段在世界坐标系（链根坐标系）中的 4x4 变换

    :param chain: 运动学链
    :param q_full: 全关节向量
    :return: 与 chain.segments 一一对应的变换列表
    """
    q_full = _check_length(chain, q_full)
    frames: List[np.ndarray] = []
    transform = np.identity(4, dtype=np.float64)
    q_idx = 0
    for segment in chain.segments:
        if segment.get_dof() > 0:
            local_transform = segment.get_local_matrix(q_full[q_idx])
            q_idx += 1
        else:
            local_transform = segment.get_local_matrix()
        # global = parent_global @ local
        transform = transform @ local_transform
        frames.append(transform)
    return frames


class ForwardKinematicsSolver:
    """
    正运动学求解器：全关节向量 -> 末端位姿

    不保存任何关节状态，可被多个求解器共享。
    """

    def __init__(self, chain: Chain):
        self.chain = chain

    def compute_pose(self, q_full: np.ndarray) -> np.ndarray:
        """
        :param q_full: 全关节向量
        :return: 末端执行器 4x4 变换
        """
        return compute_joint_frames(self.chain, q_full)[-1]


def compute_jacobian(chain: Chain, q_full: np.ndarray) -> np.ndarray:
    """
    构建全空间几何雅可比矩阵 J (6xN)

    :param chain: 运动学链
    :param q_full: 全关节向量
    :return: 6xN 雅可比矩阵，N 为可动关节数
    """
    frames = compute_joint_frames(chain, q_full)
    end_effector_pos = frames[-1][:3, 3]

    jacobian = np.zeros((6, chain.num_joints), dtype=np.float64)
    col_idx = 0
    for segment, frame in zip(chain.segments, frames):
        if segment.get_dof() == 0:
            continue
        jacobian[:, col_idx] = segment.compute_jacobian_column(frame, end_effector_pos)
        col_idx += 1
    return jacobian


def compute_error_vector(current_transform: np.ndarray,
                         target_transform: np.ndarray) -> np.ndarray:
    """
    计算当前末端姿态和目标姿态之间的 6x1 误差向量 (delta_x)

    :param current_transform: 末端执行器当前的 4x4 全局变换矩阵
    :param target_transform: 目标 4x4 全局变换矩阵
    :return: 6x1 的误差向量 [delta_p (3x1), delta_r (3x1)]
    """
    delta_p = target_transform[:3, 3] - current_transform[:3, 3]

    # R_error = R_target * R_current^(-1)，旋转矩阵转置即是逆
    R_error_mat = target_transform[:3, :3] @ current_transform[:3, :3].T
    # 轴-角向量的方向是旋转轴，模长是旋转角度（弧度）
    delta_r = R.from_matrix(R_error_mat).as_rotvec()

    return np.concatenate([delta_p, delta_r])
