"""
关节类层次结构实现

关节对象只描述运动学结构（偏移、轴向、限位），不保存关节变量。
关节变量由求解器以关节向量的形式传入，因此同一条链可以被多个求解器实例只读共享。
"""
import math
import numpy as np
from abc import ABC, abstractmethod
from typing_extensions import override
from typing import Optional, Tuple, List

from mimic_ik.utils import quaternion_to_rotation_matrix, axis_angle_to_rotation_matrix


TWO_PI = 2.0 * math.pi


def _normalize_axis(axis: np.ndarray) -> np.ndarray:
    axis = np.asarray(axis, dtype=np.float64)
    if axis.shape != (3,):
        raise ValueError(f"Axis must be a 3-element vector, got shape {axis.shape}")
    axis_norm = np.linalg.norm(axis)
    if axis_norm > 1e-6:
        return axis / axis_norm
    raise ValueError(f"Axis vector is not a unit vector and too small to be normalized: {axis}")


def _normalize_limits(limits: Optional[Tuple[float, float]]) -> Tuple[float, float]:
    if limits is None:
        return (-math.inf, math.inf)
    min_val, max_val = float(limits[0]), float(limits[1])
    if min_val > max_val:
        raise ValueError(f"Invalid limits: min {min_val} > max {max_val}")
    return (min_val, max_val)


class JointNode(ABC):
    """
    所有关节类型的抽象基类，定义求解器接口。
    """

    joint_type: str = ''

    def __init__(self, name: str, offset: np.ndarray):
        """
        初始化关节节点

        :param name: 关节名称
        :param offset: 相对父级的静态位移 (Vec3)
        """
        self.name = name
        self.parent: Optional['JointNode'] = None
        self.children: List['JointNode'] = []
        self.local_offset: np.ndarray = np.asarray(offset, dtype=np.float64)
        if self.local_offset.shape != (3,):
            raise ValueError(f"Offset of joint {name} must be a 3-element vector, got shape {self.local_offset.shape}")
        self.local_offset.setflags(write=False)

    def add_child(self, child: 'JointNode'):
        """
        添加子节点，仅在从树结构组装链（Chain.from_tree）时使用
        """
        child.parent = self
        self.children.append(child)

    @abstractmethod
    def get_local_matrix(self, q: float = 0.0) -> np.ndarray:
        """
        根据关节变量计算局部变换矩阵。

        :param q: 关节变量（弧度或米），固定关节忽略
        :return: 4x4 局部变换矩阵
        """
        pass

    @abstractmethod
    def compute_jacobian_column(self, joint_frame: np.ndarray, end_effector_pos: np.ndarray) -> np.ndarray:
        """
        计算并返回该关节对应的雅可比列向量 (6x1)。

        :param joint_frame: 该关节在世界坐标系中的 4x4 变换（已包含本关节的变量）
        :param end_effector_pos: 末端执行器当前在世界坐标系中的位置 (3x1 向量)
        :return: 6x1 列向量，前3个元素为线速度贡献，后3个元素为角速度贡献
        """
        pass

    @abstractmethod
    def get_dof(self) -> int:
        """
        返回自由度数量 (0 或 1)。
        """
        pass

    @property
    def limits(self) -> Tuple[float, float]:
        return (-math.inf, math.inf)

    def harmonize(self, q: float) -> float:
        """规范化关节变量的表示，默认不做任何处理"""
        return q

    def __repr__(self):
        return f"<{self.__class__.__name__}: {self.name}>"


class RevoluteJoint(JointNode):
    """
    旋转关节 - 绕固定轴旋转的铰链
    """

    joint_type = 'revolute'

    def __init__(self, name: str, offset: np.ndarray, axis: np.ndarray,
                 limits: Optional[Tuple[float, float]] = None):
        """
        初始化旋转关节

        :param name: 关节名称
        :param offset: 相对父级的静态位移 (Vec3)
        :param axis: 旋转轴（局部坐标系，不能为零向量。程序自动归一化）
        :param limits: 约束范围 [min, max]（弧度），None 表示无约束
        """
        super().__init__(name, offset)
        self.axis = _normalize_axis(axis)
        self.axis.setflags(write=False)
        self._limits = _normalize_limits(limits)

    @property
    @override
    def limits(self) -> Tuple[float, float]:
        return self._limits

    def get_local_matrix(self, q: float = 0.0) -> np.ndarray:
        """生成绕 axis 旋转 q 的矩阵"""
        local_transform = np.identity(4, dtype=np.float64)
        local_transform[:3, :3] = axis_angle_to_rotation_matrix(self.axis, q)
        local_transform[:3, 3] = self.local_offset
        return local_transform

    def compute_jacobian_column(self, joint_frame: np.ndarray, end_effector_pos: np.ndarray) -> np.ndarray:
        """
        计算雅可比列向量: J_i = [z_i cross (p_end - p_i), z_i]^T
        所有变量必须处于世界坐标系下
        """
        # 旋转不改变转轴方向，所以用包含 q 的关节坐标系换算轴向即可
        z_i = joint_frame[:3, :3] @ self.axis
        p_i = joint_frame[:3, 3]

        J_v = np.cross(z_i, end_effector_pos - p_i)
        J_w = z_i
        return np.concatenate([J_v, J_w])

    def get_dof(self) -> int:
        return 1

    @override
    def harmonize(self, q: float) -> float:
        """将角度归一化到 [-2PI, 2PI]，只改变表示，不改变物理姿态"""
        if not math.isfinite(q) or abs(q) <= TWO_PI:
            return q
        return math.fmod(q, TWO_PI)


class PrismaticJoint(JointNode):
    """
    移动关节 - 沿固定轴滑动的滑块
    """

    joint_type = 'prismatic'

    def __init__(self, name: str, offset: np.ndarray, axis: np.ndarray,
                 limits: Optional[Tuple[float, float]] = None):
        """
        初始化移动关节

        :param name: 关节名称
        :param offset: 相对父级的静态位移 (Vec3)
        :param axis: 移动轴（局部坐标系，不能为零向量。程序自动归一化）
        :param limits: 约束范围 [min, max](米), None 表示无约束
        """
        super().__init__(name, offset)
        self.axis = _normalize_axis(axis)
        self.axis.setflags(write=False)
        self._limits = _normalize_limits(limits)

    @property
    @override
    def limits(self) -> Tuple[float, float]:
        return self._limits

    def get_local_matrix(self, q: float = 0.0) -> np.ndarray:
        """生成沿 axis 平移 q 的矩阵: T = [I | offset + q * axis]"""
        local_transform = np.identity(4, dtype=np.float64)
        local_transform[:3, 3] = self.local_offset + q * self.axis
        return local_transform

    def compute_jacobian_column(self, joint_frame: np.ndarray, end_effector_pos: np.ndarray) -> np.ndarray:
        """
        计算雅可比列向量: J_i = [z_i, 0]^T
        """
        z_i = joint_frame[:3, :3] @ self.axis
        return np.concatenate([z_i, np.zeros(3)])

    def get_dof(self) -> int:
        return 1


class FixedJoint(JointNode):
    """
    固定关节 - 无变量的结构连接或末端执行器
    quaternion 表示固定关节的本地旋转姿态（四元数, [w, x, y, z]）
    """

    joint_type = 'fixed'

    def __init__(self, name: str, offset: np.ndarray, quaternion: Optional[np.ndarray] = None):
        """
        初始化固定关节

        :param name: 关节名称
        :param offset: 相对父级的静态位移 (Vec3)
        :param quaternion: 固定关节的本地旋转（四元数，格式为[w, x, y, z]），若为None则默认为无旋转单位四元数
        """
        super().__init__(name, offset)
        if quaternion is None:
            self.quaternion = np.array([1.0, 0.0, 0.0, 0.0], dtype=np.float64)
        else:
            self.quaternion = np.array(quaternion, dtype=np.float64)
            norm = np.linalg.norm(self.quaternion)
            if norm > 1e-6:
                self.quaternion /= norm
            else:
                raise ValueError(f"Quaternion norm too small: {self.quaternion}")
        self.quaternion.setflags(write=False)
        self._local_transform = np.identity(4, dtype=np.float64)
        self._local_transform[:3, :3] = quaternion_to_rotation_matrix(self.quaternion)
        self._local_transform[:3, 3] = self.local_offset

    def get_local_matrix(self, q: float = 0.0) -> np.ndarray:
        """返回本地变换矩阵：先旋转，再平移"""
        return self._local_transform.copy()

    def compute_jacobian_column(self, joint_frame: np.ndarray, end_effector_pos: np.ndarray) -> np.ndarray:
        """固定关节不参与雅可比构建"""
        raise NotImplementedError("FixedJoint has no Jacobian column")

    def get_dof(self) -> int:
        return 0
