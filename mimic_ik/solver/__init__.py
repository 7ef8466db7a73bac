"""
求解层 (Solver Layer)
纯数学计算：正运动学、雅可比矩阵、自由度缩减、角度规范化、限位检查、LM 求解及带约束的迭代 IK
"""

from .ik_core import (
    ForwardKinematicsSolver,
    compute_joint_frames,
    compute_jacobian,
    compute_error_vector
)
from .reduction import (
    num_active,
    reduce_joints,
    expand_joints,
    reduce_jacobian,
    reduced_limits,
    effective_reduced_limits
)
from .limits import (
    ClampMode,
    harmonize,
    obeys_limits,
    violating_joints,
    clamp_to_limits
)
from .status import LMStatus, IKStatus, IKResult
from .lma import LMPositionSolver
from .solve_ik import MimicJointLimitIKSolver

__all__ = [
    'ForwardKinematicsSolver',
    'compute_joint_frames',
    'compute_jacobian',
    'compute_error_vector',
    'num_active',
    'reduce_joints',
    'expand_joints',
    'reduce_jacobian',
    'reduced_limits',
    'effective_reduced_limits',
    'ClampMode',
    'harmonize',
    'obeys_limits',
    'violating_joints',
    'clamp_to_limits',
    'LMStatus',
    'IKStatus',
    'IKResult',
    'LMPositionSolver',
    'MimicJointLimitIKSolver'
]
