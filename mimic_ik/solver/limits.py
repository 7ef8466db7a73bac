"""
角度规范化与限位检查/修复
"""
import enum
import numpy as np
from typing import List

from mimic_ik.model.chain import Chain


class ClampMode(enum.Enum):
    """
    限位违规后，下一次尝试的初值如何夹紧
    - ACTIVE: 只按主动关节自身的限位夹紧
    - MIMIC_AWARE: 按主动关节自身限位与其从动关节反推限位的交集夹紧
    """
    ACTIVE = 'active'
    MIMIC_AWARE = 'mimic_aware'


def harmonize(q_full: np.ndarray, chain: Chain) -> np.ndarray:
    """
    将旋转关节的角度放到 [-2PI, 2PI] 内，移动关节不变

    :param q_full: 全关节向量
    :param chain: 运动学链（决定每个分量的关节类型）
    :return: 新的全关节向量
    """
    return np.array([joint.harmonize(float(q)) for joint, q in zip(chain.joints, q_full)],
                    dtype=np.float64)


def obeys_limits(q_full: np.ndarray, q_min: np.ndarray, q_max: np.ndarray) -> bool:
    """所有关节都在闭区间 [min, max] 内时返回 True"""
    q_full = np.asarray(q_full, dtype=np.float64)
    return bool(np.all((q_full >= q_min) & (q_full <= q_max)))


def violating_joints(q_full: np.ndarray, q_min: np.ndarray, q_max: np.ndarray) -> List[int]:
    q_full = np.asarray(q_full, dtype=np.float64)
    inside = (q_full >= q_min) & (q_full <= q_max)
    return [int(i) for i in np.flatnonzero(~inside)]


def clamp_to_limits(q: np.ndarray, q_min: np.ndarray, q_max: np.ndarray) -> np.ndarray:
    """把越限的分量夹到最近的边界，限位内的分量保持不变"""
    q = np.asarray(q, dtype=np.float64)
    return np.where(q < q_min, q_min, np.where(q > q_max, q_max, q))
