import json
import logging
import os
import sys
import time
import numpy as np

from mimic_ik.config import SolverConfig, build_solver
from mimic_ik.data_io import load_chain, load_targets, export_result
from mimic_ik.solver import MimicJointLimitIKSolver, IKResult, IKStatus, compute_error_vector

logger = logging.getLogger(__name__)


def setup_logging(level: str = 'INFO'):
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter('[%(levelname)s] %(name)s: %(message)s'))
    root_logger = logging.getLogger('mimic_ik')
    if not root_logger.handlers:
        root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, level.upper(), logging.INFO))


def is_accepted(solver: MimicJointLimitIKSolver, result: IKResult, target: np.ndarray,
                pose_tolerance: float) -> bool:
    """
    判断单个目标的求解结果是否可用

    SUCCESS 直接接受；SUCCESS_APPROXIMATE 只有在末端位姿误差不超过 pose_tolerance 时接受
    （position_ik 模式下只比较位置误差）。

    :param solver: 求解器（提供正运动学与 position_ik 设置）
    :param result: 求解结果
    :param target: 目标 4x4 变换
    :param pose_tolerance: 近似解允许的位姿误差
    """
    if result.status is IKStatus.SUCCESS:
        return True
    if result.status is not IKStatus.SUCCESS_APPROXIMATE:
        return False
    rows = 3 if solver.position_ik else 6
    error = compute_error_vector(solver.fk_solver.compute_pose(result.q), target)[:rows]
    error_norm = float(np.linalg.norm(error))
    if error_norm > pose_tolerance:
        logger.debug("Approximate solution rejected: pose error %.3e > %.3e", error_norm, pose_tolerance)
        return False
    return True


def run_solver(config_path="config.json") -> int:
    """
    批量求解：依次求解目标列表中的每个位姿，每个目标以上一个目标的解作为初值

    :param config_path: 配置文件路径
    :return: 进程退出码
    """
    if not os.path.exists(config_path):
        print(f"❌ 找不到配置文件: {config_path}")
        return 1

    try:
        with open(config_path, 'r', encoding='utf-8') as f:
            config = json.load(f)
    except (OSError, ValueError) as e:
        print(f"❌ 配置文件读取失败: {e}")
        return 1
    if not isinstance(config, dict):
        print("❌ 配置文件格式错误: 顶层必须是 JSON 对象")
        return 1

    setup_logging(config.get('log_level', 'INFO'))

    print("----------- Mimic IK Solver -----------")
    print(f"配置加载: {config_path}")

    chain_path = config.get('chain_path')
    targets_path = config.get('targets_path')
    output_path = config.get('output_path', 'solutions.json')

    try:
        solver_config = SolverConfig.from_dict(config)
    except (ValueError, TypeError) as e:
        print(f"❌ 求解参数错误: {e}")
        return 1

    print(f"正在加载运动学链: {chain_path} ...")
    try:
        chain, mimic_joints = load_chain(chain_path)
        solver = build_solver(chain, solver_config, mimic_joints)
    except (OSError, KeyError, TypeError, ValueError) as e:
        print(f"❌ 运动学链加载失败: {e}")
        return 1
    print(f"运动学链包含 {chain.num_joints} 个关节，其中 {solver.num_active} 个主动关节")

    print(f"正在加载目标位姿: {targets_path} ...")
    try:
        targets = load_targets(targets_path)
    except (OSError, KeyError, TypeError, ValueError) as e:
        print(f"❌ 目标位姿加载失败: {e}")
        return 1

    q = np.array(config.get('initial_joints', np.zeros(chain.num_joints)), dtype=np.float64)

    results = []
    accepted = []
    start_time = time.time()
    for index, target in enumerate(targets):
        sys.stdout.write(f"\r进度: {index + 1}/{len(targets)}")
        sys.stdout.flush()

        result = solver.cart_to_jnt_advanced(q, target, solver_config.lock_redundant_joints)
        results.append(result)
        accepted.append(is_accepted(solver, result, target, solver_config.pose_tolerance))
        if accepted[-1]:
            # Warm start: 下一个目标从本次的解出发
            q = result.q
        else:
            logger.warning("Target %d failed with status %s", index, result.status.value)
    print()

    duration = time.time() - start_time
    solved = sum(accepted)
    print(f"求解完成，{solved}/{len(results)} 个目标成功，耗时: {duration:.2f} 秒")

    print(f"正在导出到: {output_path} ...")
    export_result(results, chain, output_path, accepted)
    print("✅ 任务完成！")
    return 0 if solved == len(results) else 2


def main():
    if len(sys.argv) > 1:
        sys.exit(run_solver(sys.argv[1]))
    else:
        sys.exit(run_solver())


if __name__ == "__main__":
    main()
