"""
模型层 (Model Layer)
运动学链的结构描述：关节类型、链、从动关节映射

- JointNode: 抽象基类，定义所有关节的通用接口
- FixedJoint: 固定关节，无自由度，用于结构连接或末端执行器
- RevoluteJoint: 旋转关节，1自由度，绕固定轴旋转
- PrismaticJoint: 移动关节，1自由度，沿固定轴滑动
- Chain: 从根到末端的有序不可变关节序列
- JointMimic: 从动关节描述（主动关节或某主动关节的仿射函数）
"""

from .joint import (
    JointNode,
    FixedJoint,
    RevoluteJoint,
    PrismaticJoint
)
from .chain import Chain
from .mimic import (
    JointMimic,
    identity_mimic_joints,
    validate_mimic_joints,
    build_mimic_joints
)

__all__ = [
    'JointNode',
    'FixedJoint',
    'RevoluteJoint',
    'PrismaticJoint',
    'Chain',
    'JointMimic',
    'identity_mimic_joints',
    'validate_mimic_joints',
    'build_mimic_joints'
]
