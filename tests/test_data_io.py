import json
import math

import numpy as np
import pytest

from mimic_ik.data_io import create_joint, load_chain, load_targets, euler_to_transform, export_result
from mimic_ik.model import RevoluteJoint, PrismaticJoint, FixedJoint
from mimic_ik.solver import IKResult, IKStatus


GRIPPER = {
    "root_name": "base",
    "joints": [
        {"name": "base", "type": "fixed", "offset": [0, 0, 0]},
        {"name": "finger_a", "type": "revolute", "parent": "base", "offset": [0, 0, 0.1],
         "axis": [0, 0, 1], "limits": [-1.0, 1.0]},
        {"name": "finger_b", "type": "revolute", "parent": "finger_a", "offset": [0.5, 0, 0],
         "axis": [0, 0, 1], "limits": [-2.0, 2.0],
         "mimic": {"joint": "finger_a", "multiplier": -1.0, "offset": 0.2}},
        {"name": "slide", "type": "prismatic", "parent": "finger_b", "offset": [0.5, 0, 0],
         "axis": [1, 0, 0], "limits": [0.0, 0.3]},
        {"name": "tip", "type": "fixed", "parent": "slide", "offset": [0.1, 0, 0]},
        {"name": "camera", "type": "fixed", "parent": "base", "offset": [0, 0.2, 0]}
    ]
}


def _write(tmp_path, name, data):
    path = tmp_path / name
    path.write_text(json.dumps(data), encoding='utf-8')
    return str(path)


def test_create_joint_types():
    assert isinstance(create_joint({"name": "r", "type": "revolute", "axis": [0, 0, 1]}), RevoluteJoint)
    assert isinstance(create_joint({"name": "p", "type": "prismatic", "axis": [1, 0, 0]}), PrismaticJoint)
    assert isinstance(create_joint({"name": "f", "type": "fixed"}), FixedJoint)
    with pytest.raises(ValueError):
        create_joint({"name": "s", "type": "spherical"})


def test_load_chain_with_mimic(tmp_path):
    chain, mimics = load_chain(_write(tmp_path, 'chain.json', dict(GRIPPER, effector_name="tip")))
    assert chain.joint_names == ['finger_a', 'finger_b', 'slide']
    np.testing.assert_array_equal(chain.q_min, [-1.0, -2.0, 0.0])
    assert [m.active for m in mimics] == [True, False, True]
    assert mimics[1].map_index == 0
    assert mimics[1].multiplier == -1.0
    assert mimics[1].offset == 0.2
    assert mimics[2].map_index == 1


def test_load_chain_finds_effector(tmp_path):
    chain, _ = load_chain(_write(tmp_path, 'chain.json', GRIPPER))
    assert chain.segments[-1].name == 'tip'


def test_load_chain_errors(tmp_path):
    missing_parent = json.loads(json.dumps(GRIPPER))
    missing_parent['joints'][1]['parent'] = 'nowhere'
    with pytest.raises(ValueError):
        load_chain(_write(tmp_path, 'a.json', missing_parent))

    unknown_driver = json.loads(json.dumps(GRIPPER))
    unknown_driver['joints'][2]['mimic']['joint'] = 'ghost'
    with pytest.raises(ValueError):
        load_chain(_write(tmp_path, 'b.json', unknown_driver))

    duplicate = json.loads(json.dumps(GRIPPER))
    duplicate['joints'].append({"name": "slide", "type": "fixed"})
    with pytest.raises(ValueError):
        load_chain(_write(tmp_path, 'c.json', duplicate))

    with pytest.raises(ValueError):
        load_chain(_write(tmp_path, 'd.json', dict(GRIPPER, effector_name="gripper")))


def test_euler_to_transform():
    transform = euler_to_transform(np.array([1.0, 2.0, 3.0]), np.array([0.0, 0.0, 90.0]))
    np.testing.assert_allclose(transform[:3, 3], [1, 2, 3])
    np.testing.assert_allclose(transform[:3, :3] @ [1, 0, 0], [0, 1, 0], atol=1e-12)


def test_load_targets(tmp_path):
    half = math.sqrt(0.5)
    targets = load_targets(_write(tmp_path, 'targets.json', [
        {"pos": [1, 0, 0], "euler": [90, 0, 0]},
        {"pos": [0, 1, 0], "quaternion": [half, 0, 0, half]},
        {"pos": [0, 0, 1]}
    ]))
    assert len(targets) == 3
    np.testing.assert_allclose(targets[0][:3, :3] @ [0, 1, 0], [0, 0, 1], atol=1e-12)
    np.testing.assert_allclose(targets[1][:3, :3] @ [1, 0, 0], [0, 1, 0], atol=1e-12)
    np.testing.assert_array_equal(targets[2][:3, :3], np.identity(3))
    np.testing.assert_array_equal(targets[2][:3, 3], [0, 0, 1])


def test_export_result(tmp_path):
    chain, _ = load_chain(_write(tmp_path, 'chain.json', GRIPPER))
    output = tmp_path / 'out' / 'solutions.json'
    export_result([
        IKResult(np.array([0.1, 0.1, 0.2]), IKStatus.SUCCESS),
        IKResult(np.array([0.9, -0.7, 0.3]), IKStatus.LIMIT_VIOLATION),
    ], chain, str(output))

    data = json.loads(output.read_text(encoding='utf-8'))
    first, second = data['solutions']
    assert first['status'] == 'success'
    assert first['accepted']
    assert first['joints']['finger_a'] == {'type': 'revolute', 'angle': 0.1}
    assert first['joints']['slide'] == {'type': 'prismatic', 'displacement': 0.2}
    assert second['target'] == 1
    assert second['status'] == 'limit_violation'
    assert not second['accepted']
