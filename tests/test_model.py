import math

import numpy as np
import pytest

from mimic_ik.model import (
    Chain,
    FixedJoint,
    RevoluteJoint,
    PrismaticJoint,
    JointMimic,
    identity_mimic_joints,
    validate_mimic_joints,
    build_mimic_joints
)


def test_zero_axis_is_rejected():
    with pytest.raises(ValueError):
        RevoluteJoint('j', [0, 0, 0], [0, 0, 0])
    with pytest.raises(ValueError):
        PrismaticJoint('p', [0, 0, 0], [0, 0, 1e-9])


def test_inverted_limits_are_rejected():
    with pytest.raises(ValueError):
        RevoluteJoint('j', [0, 0, 0], [0, 0, 1], (1.0, -1.0))


def test_missing_limits_are_unbounded():
    joint = PrismaticJoint('p', [0, 0, 0], [2, 0, 0])
    assert joint.limits == (-math.inf, math.inf)
    np.testing.assert_allclose(joint.axis, [1, 0, 0])


def test_revolute_local_matrix_rotates_about_axis():
    joint = RevoluteJoint('j', [0.0, 0.0, 0.5], [0, 0, 1])
    transform = joint.get_local_matrix(math.pi / 2)
    np.testing.assert_allclose(transform[:3, :3] @ [1, 0, 0], [0, 1, 0], atol=1e-12)
    np.testing.assert_allclose(transform[:3, 3], [0, 0, 0.5])


def test_prismatic_local_matrix_translates_along_axis():
    joint = PrismaticJoint('p', [1.0, 0.0, 0.0], [0, 0, 1])
    np.testing.assert_allclose(joint.get_local_matrix(0.25)[:3, 3], [1.0, 0.0, 0.25])


def test_fixed_joint_has_no_dof():
    joint = FixedJoint('tool', [0, 0, 1])
    assert joint.get_dof() == 0
    with pytest.raises(NotImplementedError):
        joint.compute_jacobian_column(np.identity(4), np.zeros(3))


def test_chain_counts_only_movable_joints(mixed_chain):
    assert mixed_chain.num_joints == 3
    assert mixed_chain.num_segments == 4
    assert mixed_chain.joint_names == ['shoulder', 'slide', 'wrist']
    np.testing.assert_allclose(mixed_chain.q_min, [-3.0, 0.0, -2.0])
    np.testing.assert_allclose(mixed_chain.q_max, [3.0, 0.5, 2.0])


def test_chain_limits_are_read_only(single_joint_chain):
    with pytest.raises(ValueError):
        single_joint_chain.q_min[0] = 0.0


def test_chain_from_tree_follows_parent_links():
    base = FixedJoint('base', [0, 0, 0])
    j1 = RevoluteJoint('j1', [0, 0, 0.1], [0, 0, 1])
    j2 = RevoluteJoint('j2', [0.5, 0, 0], [0, 1, 0])
    side = FixedJoint('camera', [0, 0.1, 0])
    tool = FixedJoint('tool', [0.5, 0, 0])
    base.add_child(j1)
    j1.add_child(j2)
    j1.add_child(side)
    j2.add_child(tool)

    chain = Chain.from_tree(base, tool)
    assert [s.name for s in chain.segments] == ['base', 'j1', 'j2', 'tool']

    with pytest.raises(ValueError):
        Chain.from_tree(j2, side)


def test_identity_map_is_valid():
    mimics = identity_mimic_joints(3)
    assert validate_mimic_joints(mimics, 3) == []
    assert [m.map_index for m in mimics] == [0, 1, 2]


def test_valid_mimic_map(gripper_mimics):
    assert validate_mimic_joints(gripper_mimics, 2) == []


@pytest.mark.parametrize('mimics', [
    # wrong length
    [JointMimic.active_joint(0)],
    # dangling reference to a slot that is not active
    [JointMimic.active_joint(0), JointMimic.mimic_of(3, 2.0)],
    # mimic of a mimic: slot 1 does not exist because joint 1 is itself a mimic
    [JointMimic.active_joint(0), JointMimic.mimic_of(0, 2.0), JointMimic.mimic_of(1, 1.0)],
    # active joint with a non-identity relation
    [JointMimic(active=True, map_index=0, multiplier=2.0), JointMimic.active_joint(1)],
    # active slots out of chain order
    [JointMimic.active_joint(1), JointMimic.active_joint(0)],
    # zero multiplier
    [JointMimic.active_joint(0), JointMimic.mimic_of(0, 0.0)],
])
def test_invalid_mimic_maps_are_reported(mimics):
    n = 3 if len(mimics) == 3 else 2
    assert validate_mimic_joints(mimics, n)


def test_build_mimic_joints_from_tags():
    mimics = build_mimic_joints(
        ['finger_left', 'wrist', 'finger_right'],
        {'finger_right': {'joint': 'finger_left', 'multiplier': -1.0, 'offset': 0.1}})
    assert mimics[0] == JointMimic.active_joint(0, 'finger_left')
    assert mimics[1] == JointMimic.active_joint(1, 'wrist')
    assert mimics[2] == JointMimic.mimic_of(0, -1.0, 0.1, 'finger_right')
    assert validate_mimic_joints(mimics, 3) == []


def test_build_mimic_joints_rejects_mimic_of_mimic():
    with pytest.raises(ValueError):
        build_mimic_joints(['a', 'b', 'c'], {'b': {'joint': 'a'}, 'c': {'joint': 'b'}})


def test_build_mimic_joints_rejects_unknown_driver():
    with pytest.raises(ValueError):
        build_mimic_joints(['a', 'b'], {'b': {'joint': 'missing'}})
