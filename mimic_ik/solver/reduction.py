"""
自由度缩减：全关节向量（所有可动关节）与缩减关节向量（仅主动关节）之间的相互转换

所有函数都是纯函数，返回新数组，不修改输入。
"""
import numpy as np
from typing import Sequence, Tuple

from mimic_ik.model.mimic import JointMimic


def num_active(mimic_joints: Sequence[JointMimic]) -> int:
    return sum(1 for m in mimic_joints if m.active)


def reduce_joints(q_full: np.ndarray, mimic_joints: Sequence[JointMimic]) -> np.ndarray:
    """
    全关节向量 -> 缩减向量：只保留主动关节，从动关节的值可由主动关节恢复，直接丢弃

    :param q_full: 全关节向量
    :param mimic_joints: 每个全关节一个描述
    :return: 缩减向量
    """
    q_full = np.asarray(q_full, dtype=np.float64)
    if q_full.shape != (len(mimic_joints),):
        raise ValueError(f"Expected full joint vector of length {len(mimic_joints)}, got shape {q_full.shape}")
    q_reduced = np.zeros(num_active(mimic_joints), dtype=np.float64)
    for i, mimic in enumerate(mimic_joints):
        if mimic.active:
            q_reduced[mimic.map_index] = q_full[i]
    return q_reduced


def expand_joints(q_reduced: np.ndarray, mimic_joints: Sequence[JointMimic]) -> np.ndarray:
    """
    缩减向量 -> 全关节向量：主动关节直接复制，从动关节 q = multiplier * q_active + offset

    :param q_reduced: 缩减向量
    :param mimic_joints: 每个全关节一个描述
    :return: 全关节向量
    """
    q_reduced = np.asarray(q_reduced, dtype=np.float64)
    if q_reduced.shape != (num_active(mimic_joints),):
        raise ValueError(f"Expected reduced joint vector of length {num_active(mimic_joints)}, got shape {q_reduced.shape}")
    q_full = np.zeros(len(mimic_joints), dtype=np.float64)
    for i, mimic in enumerate(mimic_joints):
        if mimic.active:
            q_full[i] = q_reduced[mimic.map_index]
        else:
            q_full[i] = mimic.apply(q_reduced[mimic.map_index])
    return q_full


def reduce_jacobian(jacobian: np.ndarray, mimic_joints: Sequence[JointMimic]) -> np.ndarray:
    """
    全空间雅可比 (rows x N) -> 缩减空间雅可比 (rows x k)

    链式法则：主动槽位 k 的列是所有映射到 k 的全关节列乘以各自 multiplier 之和。
    """
    reduced = np.zeros((jacobian.shape[0], num_active(mimic_joints)), dtype=np.float64)
    for i, mimic in enumerate(mimic_joints):
        reduced[:, mimic.map_index] += mimic.multiplier * jacobian[:, i]
    return reduced


def reduced_limits(q_min: np.ndarray, q_max: np.ndarray,
                   mimic_joints: Sequence[JointMimic]) -> Tuple[np.ndarray, np.ndarray]:
    """主动关节自身的限位（LM 求解器只看得到主动关节）"""
    return reduce_joints(q_min, mimic_joints), reduce_joints(q_max, mimic_joints)


def effective_reduced_limits(q_min: np.ndarray, q_max: np.ndarray,
                             mimic_joints: Sequence[JointMimic]) -> Tuple[np.ndarray, np.ndarray]:
    """
    主动关节的有效限位：自身限位与其所有从动关节限位反推得到的区间取交集

    从动关节 j 的限位 [lo_j, hi_j] 对主动关节的约束为 (bound - offset) / multiplier，
    multiplier 为负时上下界互换。交集为空时保留原样（下界大于上界），限位检查会拒绝所有结果。
    """
    red_min, red_max = reduced_limits(q_min, q_max, mimic_joints)
    for i, mimic in enumerate(mimic_joints):
        if mimic.active:
            continue
        lo = (q_min[i] - mimic.offset) / mimic.multiplier
        hi = (q_max[i] - mimic.offset) / mimic.multiplier
        if mimic.multiplier < 0:
            lo, hi = hi, lo
        k = mimic.map_index
        red_min[k] = max(red_min[k], lo)
        red_max[k] = min(red_max[k], hi)
    return red_min, red_max
