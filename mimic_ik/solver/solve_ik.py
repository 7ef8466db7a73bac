"""
带关节限位与从动关节约束的迭代 IK 求解器

流程：Init -> ReducedSolve -> Expand -> Harmonize -> LimitCheck -> {Accept | Retry | Fail}
- ReducedSolve: 在缩减空间（仅主动关节）中调用 LM 求解器
- Expand: 由主动关节推出从动关节，得到全关节向量
- Harmonize: 旋转关节角度规范化到 [-2PI, 2PI]
- LimitCheck: 全空间限位检查；越限时把候选解夹紧到限位内作为下一次尝试的初值
"""
import logging
import numpy as np
from typing import Optional, Sequence, Tuple

from mimic_ik.model.chain import Chain
from mimic_ik.model.mimic import JointMimic, identity_mimic_joints, validate_mimic_joints
from mimic_ik.utils import is_valid_frame
from .ik_core import ForwardKinematicsSolver
from .lma import LMPositionSolver
from .limits import ClampMode, harmonize, obeys_limits, violating_joints, clamp_to_limits
from .reduction import (
    num_active,
    reduce_joints,
    expand_joints,
    reduced_limits,
    effective_reduced_limits
)
from .status import IKResult, IKStatus, LMStatus

logger = logging.getLogger(__name__)


class MimicJointLimitIKSolver:
    """
    带限位 (JL) 与从动关节 (Mimic) 约束的 LM 逆运动学求解器

    chain、fk_solver、ik_solver 只是引用，调用者保证它们的生命周期长于本求解器。
    实例内部保存缩减向量等临时状态，同一实例不能被多个线程并发调用；
    chain 与限位只读，可以在多个实例之间共享。
    """

    def __init__(self, chain: Chain, q_min: np.ndarray, q_max: np.ndarray,
                 fk_solver: ForwardKinematicsSolver, ik_solver: LMPositionSolver,
                 maxiter: int = 100, eps: float = 1e-6, position_ik: bool = False,
                 clamp_mode: ClampMode = ClampMode.MIMIC_AWARE):
        """
        :param chain: 运动学链
        :param q_min: 全空间关节下限
        :param q_max: 全空间关节上限
        :param fk_solver: 正运动学求解器
        :param ik_solver: 缩减空间 LM 位置求解器
        :param maxiter: 最大尝试次数（每次越限后夹紧重试计一次）
        :param eps: 传给 LM 求解器的收敛阈值
        :param position_ik: True 时只求解位置，忽略姿态误差
        :param clamp_mode: 越限重试时初值的夹紧策略
        """
        q_min = np.array(q_min, dtype=np.float64)
        q_max = np.array(q_max, dtype=np.float64)
        n = chain.num_joints
        if q_min.shape != (n,) or q_max.shape != (n,):
            raise ValueError(f"Limits must have length {n}, got {q_min.shape} and {q_max.shape}")
        if np.any(q_min > q_max):
            raise ValueError(f"Lower limits exceed upper limits at joints {np.flatnonzero(q_min > q_max).tolist()}")
        if maxiter < 1:
            raise ValueError(f"maxiter must be >= 1, got {maxiter}")

        self.chain = chain
        self.fk_solver = fk_solver
        self.ik_solver = ik_solver
        self.maxiter = maxiter
        self.eps = eps
        self.position_ik = position_ik
        self.clamp_mode = ClampMode(clamp_mode)

        # 全空间限位（用于展开后的限位检查）
        q_min.setflags(write=False)
        q_max.setflags(write=False)
        self.q_min_mimic = q_min
        self.q_max_mimic = q_max

        self._solving = False
        self._redundant_joints: Tuple[int, ...] = ()
        self._apply_mimic_joints(identity_mimic_joints(n, chain.joint_names))

    @property
    def mimic_joints(self) -> Tuple[JointMimic, ...]:
        return self._mimic_joints

    @property
    def redundant_joints(self) -> Tuple[int, ...]:
        return self._redundant_joints

    @property
    def num_active(self) -> int:
        return num_active(self._mimic_joints)

    def set_mimic_joints(self, mimic_joints: Sequence[JointMimic]) -> bool:
        """
        整体替换从动关节映射

        :param mimic_joints: 每个全关节一个描述
        :return: 映射非法或正在求解时返回 False，原映射保持不变
        """
        if self._solving:
            logger.warning("set_mimic_joints called during a solve; ignored")
            return False
        problems = validate_mimic_joints(mimic_joints, self.chain.num_joints)
        if problems:
            for problem in problems:
                logger.warning("Invalid mimic joint configuration: %s", problem)
            return False

        self._apply_mimic_joints(mimic_joints)
        if self._redundant_joints:
            # 缩减空间的索引随映射改变，旧的冗余关节设置不再有意义
            logger.info("Mimic map replaced; clearing redundant joints %s", list(self._redundant_joints))
            self._redundant_joints = ()
        return True

    def set_redundant_joints(self, redundant_joints: Sequence[int]) -> bool:
        """
        设置锁定求解时保持初值的冗余关节（缩减空间索引）

        :return: 索引越界或重复时返回 False
        """
        indices = [int(i) for i in redundant_joints]
        n = self.num_active
        if len(set(indices)) != len(indices) or any(not 0 <= i < n for i in indices):
            logger.warning("Invalid redundant joints %s for %d active joints", indices, n)
            return False
        self._redundant_joints = tuple(sorted(indices))
        return True

    def cart_to_jnt(self, q_init: np.ndarray, target_transform: np.ndarray) -> IKResult:
        """
        :param q_init: 全关节向量初值
        :param target_transform: 目标 4x4 变换
        :return: IKResult(全关节向量, 状态)
        """
        return self.cart_to_jnt_advanced(q_init, target_transform, lock_redundant_joints=False)

    def cart_to_jnt_advanced(self, q_init: np.ndarray, target_transform: np.ndarray,
                             lock_redundant_joints: bool = False) -> IKResult:
        """
        :param q_init: 全关节向量初值
        :param target_transform: 目标 4x4 变换
        :param lock_redundant_joints: True 时 set_redundant_joints 指定的关节保持初值
        :return: IKResult(全关节向量, 状态)
        """
        q_init = np.array(q_init, dtype=np.float64)
        if q_init.shape != (self.chain.num_joints,):
            logger.warning("Initial joint vector has shape %s, chain has %d joints",
                           q_init.shape, self.chain.num_joints)
            return IKResult(q_init, IKStatus.CONFIGURATION_ERROR)
        if not np.all(np.isfinite(q_init)):
            logger.warning("Initial joint vector is not finite: %s", q_init)
            return IKResult(q_init, IKStatus.CONFIGURATION_ERROR)
        if not is_valid_frame(target_transform):
            logger.warning("Target frame must be a finite rigid 4x4 transform")
            return IKResult(q_init, IKStatus.CONFIGURATION_ERROR)

        free_mask = None
        if lock_redundant_joints and self._redundant_joints:
            free_mask = np.ones(self.num_active, dtype=bool)
            free_mask[list(self._redundant_joints)] = False
        elif lock_redundant_joints:
            logger.warning("lock_redundant_joints requested but no redundant joints are set; solving all joints")

        self._solving = True
        try:
            return self._solve(q_init, np.asarray(target_transform, dtype=np.float64), free_mask)
        finally:
            self._solving = False

    def _solve(self, q_init: np.ndarray, target_transform: np.ndarray,
               free_mask: Optional[np.ndarray]) -> IKResult:
        mimic_joints = self._mimic_joints
        # 第一次尝试使用调用者给出的初值，不做夹紧
        self._q_temp = reduce_joints(q_init, mimic_joints)
        locked_values = None if free_mask is None else self._q_temp[~free_mask].copy()
        # 锁定关节在全空间中的位置，这些分量不做角度规范化，保证原样返回初值
        locked_full = np.array([m.active and not free_mask[m.map_index] for m in mimic_joints],
                               dtype=bool) if free_mask is not None else None
        q_out = q_init.copy()

        for attempt in range(1, self.maxiter + 1):
            candidate, lm_status = self.ik_solver.solve(
                self._q_temp, target_transform,
                mimic_joints=mimic_joints,
                position_ik=self.position_ik,
                free_mask=free_mask,
                eps=self.eps)

            q_expanded = expand_joints(candidate, mimic_joints)
            q_out = harmonize(q_expanded, self.chain)
            if locked_full is not None:
                q_out[locked_full] = q_expanded[locked_full]

            if lm_status is LMStatus.SINGULAR:
                logger.warning("Singular configuration on attempt %d; giving up", attempt)
                return IKResult(q_out, IKStatus.SINGULAR)

            if obeys_limits(q_out, self.q_min_mimic, self.q_max_mimic):
                if lm_status is LMStatus.CONVERGED:
                    logger.info("IK solved on attempt %d", attempt)
                    return IKResult(q_out, IKStatus.SUCCESS)
                logger.info("IK accepted on attempt %d without full LM convergence", attempt)
                return IKResult(q_out, IKStatus.SUCCESS_APPROXIMATE)

            logger.debug("Attempt %d violates limits at joints %s", attempt,
                         violating_joints(q_out, self.q_min_mimic, self.q_max_mimic))

            # 从越限的候选解出发重试，否则下一次会沿相同轨迹再次失败
            self._q_temp = clamp_to_limits(reduce_joints(q_out, mimic_joints),
                                           self._clamp_min, self._clamp_max)
            if free_mask is not None:
                self._q_temp[~free_mask] = locked_values

        logger.warning("IK failed: joint limits still violated after %d attempts", self.maxiter)
        return IKResult(q_out, IKStatus.LIMIT_VIOLATION)

    def _apply_mimic_joints(self, mimic_joints: Sequence[JointMimic]):
        self._mimic_joints = tuple(mimic_joints)
        # 缩减空间限位（LM 求解器只看得到主动关节）
        self.q_min, self.q_max = reduced_limits(self.q_min_mimic, self.q_max_mimic, self._mimic_joints)
        if self.clamp_mode is ClampMode.MIMIC_AWARE:
            self._clamp_min, self._clamp_max = effective_reduced_limits(
                self.q_min_mimic, self.q_max_mimic, self._mimic_joints)
        else:
            self._clamp_min, self._clamp_max = self.q_min, self.q_max
        self._q_temp = np.zeros(num_active(self._mimic_joints), dtype=np.float64)
