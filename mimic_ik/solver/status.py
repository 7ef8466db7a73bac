"""
求解状态码
"""
import enum
from typing import NamedTuple

import numpy as np


class LMStatus(enum.Enum):
    """LM 位置求解器（缩减空间）的返回状态"""
    CONVERGED = 'converged'
    MAX_ITERATIONS = 'max_iterations'
    SINGULAR = 'singular'


class IKStatus(enum.Enum):
    """带限位与从动关节约束的 IK 求解器对调用者返回的状态"""
    SUCCESS = 'success'
    SUCCESS_APPROXIMATE = 'success_approximate'  # LM 未完全收敛，但结果满足限位
    LIMIT_VIOLATION = 'limit_violation'
    SINGULAR = 'singular'
    CONFIGURATION_ERROR = 'configuration_error'

    @property
    def ok(self) -> bool:
        return self in (IKStatus.SUCCESS, IKStatus.SUCCESS_APPROXIMATE)


class IKResult(NamedTuple):
    q: np.ndarray
    status: IKStatus
