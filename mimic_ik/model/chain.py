"""
运动学链：从根到末端执行器的有序、不可变关节序列
"""
import numpy as np
from typing import List, Sequence, Tuple

from .joint import JointNode


class Chain:
    """
    串联运动学链

    链构造后只读，可以被正运动学求解器、LM 求解器以及多个 IK 求解器实例同时引用。
    全关节向量的长度等于链中可动关节（get_dof() == 1）的数量，顺序与链顺序一致。
    """

    def __init__(self, segments: Sequence[JointNode]):
        """
        :param segments: 按从根到末端顺序排列的关节（可包含固定关节）
        """
        if len(segments) == 0:
            raise ValueError("Chain needs at least one segment")
        self._segments: Tuple[JointNode, ...] = tuple(segments)
        self._joints: Tuple[JointNode, ...] = tuple(s for s in self._segments if s.get_dof() > 0)

        q_min = np.array([j.limits[0] for j in self._joints], dtype=np.float64)
        q_max = np.array([j.limits[1] for j in self._joints], dtype=np.float64)
        q_min.setflags(write=False)
        q_max.setflags(write=False)
        self._q_min = q_min
        self._q_max = q_max

    @classmethod
    def from_tree(cls, root: JointNode, effector: JointNode) -> 'Chain':
        """
        构建从 root 到 effector 路径上的链。
        root 不一定是全局树的根节点，effector 也不一定是全局树的末端，可以用来定义短链。

        :param root: 链的起点
        :param effector: 链的终点（末端执行器）
        """
        path: List[JointNode] = []
        current = effector

        # 从effector开始，不断向上遍历parent，直到找到root
        while current is not None:
            path.append(current)
            if current is root:
                break
            current = current.parent

        if path[-1] is not root:
            raise ValueError(f"Cannot find path from {root.name} to {effector.name}")

        path.reverse()
        return cls(path)

    @property
    def segments(self) -> Tuple[JointNode, ...]:
        return self._segments

    @property
    def joints(self) -> Tuple[JointNode, ...]:
        """可动关节（全关节向量的每个分量对应一个）"""
        return self._joints

    @property
    def num_joints(self) -> int:
        return len(self._joints)

    @property
    def num_segments(self) -> int:
        return len(self._segments)

    @property
    def joint_names(self) -> List[str]:
        return [j.name for j in self._joints]

    @property
    def q_min(self) -> np.ndarray:
        return self._q_min

    @property
    def q_max(self) -> np.ndarray:
        return self._q_max

    def __len__(self):
        return self.num_segments

    def __repr__(self):
        return f"<Chain: {self.num_joints} joints, {self.num_segments} segments>"
