"""
Levenberg-Marquardt 位置求解器（缩减空间）

在主动关节组成的缩减空间中最小化末端位姿误差，不处理关节限位。
每次迭代：
    (J^T J + λI) Δq = J^T e
误差下降则接受步长并减小阻尼 λ，否则增大阻尼重新求解。
"""
import logging
import numpy as np
from typing import Optional, Sequence, Tuple

from mimic_ik.model.chain import Chain
from mimic_ik.model.mimic import JointMimic, identity_mimic_joints
from .ik_core import ForwardKinematicsSolver, compute_jacobian, compute_error_vector
from .reduction import num_active, expand_joints, reduce_jacobian
from .status import LMStatus

logger = logging.getLogger(__name__)


class LMPositionSolver:
    """
    无约束 LM 位置求解器

    只读引用 chain 和 fk_solver，不保存求解之间的状态，可以被多个 IK 求解器共享（串行调用）。
    """

    def __init__(self, chain: Chain, fk_solver: ForwardKinematicsSolver,
                 max_iterations: int = 500,
                 eps: float = 1e-5,
                 eps_joints: float = 1e-15,
                 weights: Sequence[float] = (1.0, 1.0, 1.0, 1.0, 1.0, 1.0),
                 initial_damping: float = 1e-3,
                 max_damping: float = 1e10):
        """
        :param chain: 运动学链
        :param fk_solver: 正运动学求解器
        :param max_iterations: 最大迭代次数
        :param eps: 加权误差范数小于该值视为收敛
        :param eps_joints: 关节增量范数小于该值视为停滞
        :param weights: 6 维误差权重 [x, y, z, rx, ry, rz]
        :param initial_damping: 初始阻尼系数 λ
        :param max_damping: 阻尼超过该值视为停滞
        """
        if max_iterations < 1:
            raise ValueError(f"max_iterations must be >= 1, got {max_iterations}")
        weights = np.asarray(weights, dtype=np.float64)
        if weights.shape != (6,) or np.any(weights < 0):
            raise ValueError(f"weights must be 6 non-negative values, got {weights}")
        self.chain = chain
        self.fk_solver = fk_solver
        self.max_iterations = max_iterations
        self.eps = eps
        self.eps_joints = eps_joints
        self.weights = weights
        self.initial_damping = initial_damping
        self.max_damping = max_damping

    def solve(self,
              q_init: np.ndarray,
              target_transform: np.ndarray,
              mimic_joints: Optional[Sequence[JointMimic]] = None,
              position_ik: bool = False,
              free_mask: Optional[np.ndarray] = None,
              eps: Optional[float] = None) -> Tuple[np.ndarray, LMStatus]:
        """
        在缩减空间中求解

        :param q_init: 缩减向量初值
        :param target_transform: 目标 4x4 变换
        :param mimic_joints: 从动关节映射，None 表示全部为主动关节
        :param position_ik: True 时忽略姿态误差
        :param free_mask: 缩减空间的布尔掩码，False 的分量保持初值不变
        :param eps: 覆盖构造时的收敛阈值
        :return: (缩减向量, 状态)
        """
        if mimic_joints is None:
            mimic_joints = identity_mimic_joints(self.chain.num_joints)
        eps = self.eps if eps is None else eps

        q = np.array(q_init, dtype=np.float64)
        n = num_active(mimic_joints)
        if q.shape != (n,):
            raise ValueError(f"Expected reduced joint vector of length {n}, got shape {q.shape}")
        free = np.ones(n, dtype=bool) if free_mask is None else np.asarray(free_mask, dtype=bool)
        if free.shape != (n,):
            raise ValueError(f"free_mask must have length {n}, got shape {free.shape}")

        rows = 3 if position_ik else 6
        weights = self.weights[:rows]

        def evaluate(q_reduced: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
            q_full = expand_joints(q_reduced, mimic_joints)
            pose = self.fk_solver.compute_pose(q_full)
            error = compute_error_vector(pose, target_transform)[:rows] * weights
            return q_full, error

        q_full, error = evaluate(q)
        error_norm = np.linalg.norm(error)

        if not free.any():
            return q, LMStatus.CONVERGED if error_norm <= eps else LMStatus.SINGULAR

        damping = self.initial_damping
        identity = np.identity(int(free.sum()), dtype=np.float64)
        stalled = False

        for iteration in range(self.max_iterations):
            if error_norm <= eps:
                logger.debug("LM converged after %d iterations (error %.3e)", iteration, error_norm)
                return q, LMStatus.CONVERGED

            jacobian_free = self._weighted_jacobian(q_full, mimic_joints, rows, free)
            gradient = jacobian_free.T @ error
            normal_matrix = jacobian_free.T @ jacobian_free

            while True:
                try:
                    delta_q = np.linalg.solve(normal_matrix + damping * identity, gradient)
                except np.linalg.LinAlgError:
                    logger.debug("LM linear solve failed at iteration %d", iteration)
                    return q, LMStatus.SINGULAR

                if np.linalg.norm(delta_q) <= self.eps_joints:
                    stalled = True
                    break

                q_new = q.copy()
                q_new[free] += delta_q
                q_full_new, error_new = evaluate(q_new)
                error_norm_new = np.linalg.norm(error_new)

                if error_norm_new < error_norm:
                    q, q_full, error, error_norm = q_new, q_full_new, error_new, error_norm_new
                    damping = max(damping * 0.1, 1e-12)
                    break

                damping *= 10.0
                if damping > self.max_damping:
                    stalled = True
                    break

            if stalled:
                break

        if error_norm <= eps:
            return q, LMStatus.CONVERGED

        if stalled and self._lost_rank(q, mimic_joints, rows, free):
            logger.debug("LM stalled at a singular configuration (error %.3e)", error_norm)
            return q, LMStatus.SINGULAR

        logger.debug("LM stopped without converging (error %.3e, stalled=%s)", error_norm, stalled)
        return q, LMStatus.MAX_ITERATIONS

    def _weighted_jacobian(self, q_full: np.ndarray, mimic_joints: Sequence[JointMimic],
                           rows: int, free: np.ndarray) -> np.ndarray:
        """缩减空间雅可比，加权后只保留自由分量"""
        jacobian = reduce_jacobian(compute_jacobian(self.chain, q_full), mimic_joints)
        return jacobian[:rows, free] * self.weights[:rows, None]

    def _lost_rank(self, q: np.ndarray, mimic_joints: Sequence[JointMimic],
                   rows: int, free: np.ndarray) -> bool:
        """
        停滞点的雅可比秩是否低于附近构型的秩

        平面机构等结构上恒有零行的链，秩本来就小于列数，不能直接与列数比较；
        这里与自由分量各扰动 0.1 后的构型比较。
        """
        perturbation = np.array([0.1 * (i + 1) * (-1) ** i for i in range(int(free.sum()))])
        q_nearby = q.copy()
        q_nearby[free] += perturbation

        rank_here = np.linalg.matrix_rank(
            self._weighted_jacobian(expand_joints(q, mimic_joints), mimic_joints, rows, free))
        rank_nearby = np.linalg.matrix_rank(
            self._weighted_jacobian(expand_joints(q_nearby, mimic_joints), mimic_joints, rows, free))
        return rank_here < rank_nearby
