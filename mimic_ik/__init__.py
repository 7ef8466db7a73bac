"""
mimic_ik
串联运动学链的迭代数值逆运动学求解器，支持关节限位与从动关节（mimic joint）约束
"""

from .model import (
    JointNode,
    FixedJoint,
    RevoluteJoint,
    PrismaticJoint,
    Chain,
    JointMimic,
    build_mimic_joints
)
from .solver import (
    ForwardKinematicsSolver,
    LMPositionSolver,
    MimicJointLimitIKSolver,
    ClampMode,
    IKStatus,
    IKResult,
    LMStatus
)
from .config import SolverConfig, build_solver

__version__ = '0.1.0'

__all__ = [
    'JointNode',
    'FixedJoint',
    'RevoluteJoint',
    'PrismaticJoint',
    'Chain',
    'JointMimic',
    'build_mimic_joints',
    'ForwardKinematicsSolver',
    'LMPositionSolver',
    'MimicJointLimitIKSolver',
    'ClampMode',
    'IKStatus',
    'IKResult',
    'LMStatus',
    'SolverConfig',
    'build_solver'
]
