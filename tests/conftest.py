import numpy as np
import pytest

from mimic_ik.model import Chain, FixedJoint, RevoluteJoint, PrismaticJoint, JointMimic
from mimic_ik.solver import ForwardKinematicsSolver

Z_AXIS = [0.0, 0.0, 1.0]


class RecordingLMSolver:
    """Wraps an LM solver and records the reduced initial guess of every call."""

    def __init__(self, inner, on_solve=None):
        self.inner = inner
        self.on_solve = on_solve
        self.initial_guesses = []

    def solve(self, q_init, target_transform, **kwargs):
        self.initial_guesses.append(np.array(q_init, dtype=np.float64))
        if self.on_solve is not None:
            self.on_solve()
        return self.inner.solve(q_init, target_transform, **kwargs)


@pytest.fixture
def single_joint_chain():
    # one revolute joint about z with a unit link to the tool
    return Chain([
        RevoluteJoint('j1', [0.0, 0.0, 0.0], Z_AXIS, (-1.57, 1.57)),
        FixedJoint('tool', [1.0, 0.0, 0.0]),
    ])


@pytest.fixture
def planar_chain():
    # two revolute joints about z, unit links
    return Chain([
        RevoluteJoint('j1', [0.0, 0.0, 0.0], Z_AXIS, (-3.0, 3.0)),
        RevoluteJoint('j2', [1.0, 0.0, 0.0], Z_AXIS, (-3.0, 3.0)),
        FixedJoint('tool', [1.0, 0.0, 0.0]),
    ])


@pytest.fixture
def mixed_chain():
    return Chain([
        RevoluteJoint('shoulder', [0.0, 0.0, 0.5], Z_AXIS, (-3.0, 3.0)),
        PrismaticJoint('slide', [0.2, 0.0, 0.0], [1.0, 0.0, 0.0], (0.0, 0.5)),
        RevoluteJoint('wrist', [0.3, 0.0, 0.0], [0.0, 1.0, 0.0], (-2.0, 2.0)),
        FixedJoint('tool', [0.0, 0.0, -0.1], [0.7071068, 0.0, 0.7071068, 0.0]),
    ])


@pytest.fixture
def gripper_mimics():
    # j2 follows j1 with multiplier 2
    return [JointMimic.active_joint(0, 'j1'), JointMimic.mimic_of(0, 2.0, 0.0, 'j2')]


def pose_at(chain, q):
    return ForwardKinematicsSolver(chain).compute_pose(np.asarray(q, dtype=np.float64))
