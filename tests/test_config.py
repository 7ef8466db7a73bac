import numpy as np
import pytest

from mimic_ik.config import SolverConfig, build_solver
from mimic_ik.model import JointMimic
from mimic_ik.solver import ClampMode, IKStatus

from conftest import pose_at


def test_from_dict_defaults():
    config = SolverConfig.from_dict({})
    assert config == SolverConfig()
    assert config.clamp_mode is ClampMode.MIMIC_AWARE
    assert config.redundant_joints == []


def test_from_dict_reads_values():
    config = SolverConfig.from_dict({
        'maxiter': 7,
        'eps': 1e-4,
        'position_ik': True,
        'clamp_mode': 'active',
        'lm_weights': [1, 1, 1, 0, 0, 0],
        'redundant_joints': [1],
        'lock_redundant_joints': True,
        'pose_tolerance': 0.01,
        'chain_path': 'ignored.json'
    })
    assert config.maxiter == 7
    assert config.eps == 1e-4
    assert config.position_ik
    assert config.clamp_mode is ClampMode.ACTIVE
    assert config.lm_weights == (1.0, 1.0, 1.0, 0.0, 0.0, 0.0)
    assert config.redundant_joints == [1]
    assert config.lock_redundant_joints
    assert config.pose_tolerance == 0.01


def test_from_dict_rejects_bad_values():
    with pytest.raises(ValueError):
        SolverConfig.from_dict({'lm_weights': [1, 1, 1]})
    with pytest.raises(ValueError):
        SolverConfig.from_dict({'clamp_mode': 'nearest'})


def test_build_solver_uses_chain_limits(planar_chain):
    solver = build_solver(planar_chain)
    np.testing.assert_array_equal(solver.q_min_mimic, planar_chain.q_min)
    np.testing.assert_array_equal(solver.q_max_mimic, planar_chain.q_max)
    assert solver.num_active == 2


def test_build_solver_applies_mimics_and_redundant_joints(planar_chain, gripper_mimics):
    solver = build_solver(planar_chain, SolverConfig(redundant_joints=[0]), gripper_mimics)
    assert solver.num_active == 1
    assert solver.redundant_joints == (0,)


def test_build_solver_rejects_invalid_setup(planar_chain):
    with pytest.raises(ValueError):
        build_solver(planar_chain, mimic_joints=[JointMimic.active_joint(0)])
    with pytest.raises(ValueError):
        build_solver(planar_chain, SolverConfig(redundant_joints=[4]))


def test_position_only_config(single_joint_chain):
    solver = build_solver(single_joint_chain, SolverConfig(position_ik=True, lm_weights=(1, 1, 1, 0, 0, 0)))
    target = pose_at(single_joint_chain, [0.3])
    target[:3, :3] = np.identity(3)
    q, status = solver.cart_to_jnt(np.array([0.0]), target)
    assert status is IKStatus.SUCCESS
    assert q[0] == pytest.approx(0.3, abs=1e-4)
