"""
求解器配置
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple

from mimic_ik.model.chain import Chain
from mimic_ik.model.mimic import JointMimic
from mimic_ik.solver.ik_core import ForwardKinematicsSolver
from mimic_ik.solver.lma import LMPositionSolver
from mimic_ik.solver.limits import ClampMode
from mimic_ik.solver.solve_ik import MimicJointLimitIKSolver

logger = logging.getLogger(__name__)


@dataclass
class SolverConfig:
    """带限位与从动关节约束的 IK 求解器配置"""

    maxiter: int = 100
    """最大 LM 尝试次数，每次限位违规消耗一次"""

    eps: float = 1e-6
    """加权位姿误差的收敛阈值，传给 LM 求解器"""

    position_ik: bool = False
    """True 时忽略姿态误差"""

    clamp_mode: ClampMode = ClampMode.MIMIC_AWARE
    """越限候选解在下一次尝试前的夹紧策略"""

    lm_max_iterations: int = 500
    """单次 LM 求解的最大迭代次数"""

    lm_eps_joints: float = 1e-15
    """关节增量小于该值时 LM 视为停滞"""

    lm_weights: Tuple[float, ...] = (1.0, 1.0, 1.0, 1.0, 1.0, 1.0)
    """误差权重 [x, y, z, rx, ry, rz]"""

    lm_initial_damping: float = 1e-3

    lock_redundant_joints: bool = False
    """求解时 redundant_joints 保持初值"""

    redundant_joints: List[int] = field(default_factory=list)
    """冗余关节的缩减空间索引"""

    pose_tolerance: float = 1e-3
    """批量求解时，近似解（SUCCESS_APPROXIMATE）的位姿误差超过该值视为失败"""

    @classmethod
    def from_dict(cls, config: Dict[str, Any]) -> 'SolverConfig':
        """读取 JSON 配置中的求解参数，缺省项使用默认值"""
        defaults = cls()
        weights = config.get('lm_weights', defaults.lm_weights)
        if len(weights) != 6:
            raise ValueError(f"lm_weights needs 6 values, got {len(weights)}")
        return cls(
            maxiter=int(config.get('maxiter', defaults.maxiter)),
            eps=float(config.get('eps', defaults.eps)),
            position_ik=bool(config.get('position_ik', defaults.position_ik)),
            clamp_mode=ClampMode(config.get('clamp_mode', defaults.clamp_mode.value)),
            lm_max_iterations=int(config.get('lm_max_iterations', defaults.lm_max_iterations)),
            lm_eps_joints=float(config.get('lm_eps_joints', defaults.lm_eps_joints)),
            lm_weights=tuple(float(w) for w in weights),
            lm_initial_damping=float(config.get('lm_initial_damping', defaults.lm_initial_damping)),
            lock_redundant_joints=bool(config.get('lock_redundant_joints', defaults.lock_redundant_joints)),
            redundant_joints=[int(i) for i in config.get('redundant_joints', [])],
            pose_tolerance=float(config.get('pose_tolerance', defaults.pose_tolerance)),
        )


def build_solver(chain: Chain, config: Optional[SolverConfig] = None,
                 mimic_joints: Optional[Sequence[JointMimic]] = None) -> MimicJointLimitIKSolver:
    """
    组装 正运动学 -> LM -> 带约束 IK 求解器

    :param chain: 运动学链（限位取自链中各关节）
    :param config: 求解参数，None 使用默认值
    :param mimic_joints: 从动关节映射，None 表示全部为主动关节
    """
    config = config or SolverConfig()
    fk_solver = ForwardKinematicsSolver(chain)
    lm_solver = LMPositionSolver(chain, fk_solver,
                                 max_iterations=config.lm_max_iterations,
                                 eps=config.eps,
                                 eps_joints=config.lm_eps_joints,
                                 weights=config.lm_weights,
                                 initial_damping=config.lm_initial_damping)
    solver = MimicJointLimitIKSolver(chain, chain.q_min, chain.q_max, fk_solver, lm_solver,
                                     maxiter=config.maxiter,
                                     eps=config.eps,
                                     position_ik=config.position_ik,
                                     clamp_mode=config.clamp_mode)

    if mimic_joints is not None and not solver.set_mimic_joints(mimic_joints):
        raise ValueError("Invalid mimic joint configuration")
    if config.redundant_joints and not solver.set_redundant_joints(config.redundant_joints):
        raise ValueError(f"Invalid redundant joints: {config.redundant_joints}")

    logger.debug("Built solver for %r with %d active joints", chain, solver.num_active)
    return solver
