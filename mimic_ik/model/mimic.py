"""
从动关节（mimic joint）描述

全关节向量中的每个关节对应一个 JointMimic：
- 主动关节：在缩减向量中占有一个槽位 map_index，multiplier=1，offset=0
- 从动关节：q = multiplier * reduced[map_index] + offset，map_index 指向其主动关节的槽位
"""
import math
from dataclasses import dataclass
from typing import Dict, List, Mapping, Sequence


@dataclass(frozen=True)
class JointMimic:
    active: bool
    map_index: int
    multiplier: float = 1.0
    offset: float = 0.0
    joint_name: str = ''

    @classmethod
    def active_joint(cls, index: int, joint_name: str = '') -> 'JointMimic':
        return cls(active=True, map_index=index, joint_name=joint_name)

    @classmethod
    def mimic_of(cls, index: int, multiplier: float = 1.0, offset: float = 0.0,
                 joint_name: str = '') -> 'JointMimic':
        return cls(active=False, map_index=index, multiplier=float(multiplier),
                   offset=float(offset), joint_name=joint_name)

    def apply(self, active_value: float) -> float:
        return self.multiplier * active_value + self.offset


def identity_mimic_joints(num_joints: int, joint_names: Sequence[str] = ()) -> List[JointMimic]:
    """所有关节都是主动关节的默认映射"""
    names = list(joint_names) or [''] * num_joints
    return [JointMimic.active_joint(i, names[i]) for i in range(num_joints)]


def validate_mimic_joints(mimic_joints: Sequence[JointMimic], num_joints: int) -> List[str]:
    """
    检查从动关节映射是否合法

    :param mimic_joints: 每个全关节一个描述
    :param num_joints: 链的可动关节数量
    :return: 问题列表，空列表表示合法
    """
    problems: List[str] = []
    if len(mimic_joints) != num_joints:
        problems.append(f"expected {num_joints} mimic descriptors, got {len(mimic_joints)}")
        return problems

    # 主动关节按链顺序依次占用 0..k-1
    next_slot = 0
    for i, mimic in enumerate(mimic_joints):
        if not mimic.active:
            continue
        if mimic.map_index != next_slot:
            problems.append(f"joint {i}: active slot {mimic.map_index}, expected {next_slot}")
        if mimic.multiplier != 1.0 or mimic.offset != 0.0:
            problems.append(f"joint {i}: active joint must have multiplier 1 and offset 0")
        next_slot += 1
    num_active = next_slot

    for i, mimic in enumerate(mimic_joints):
        if mimic.active:
            continue
        if not 0 <= mimic.map_index < num_active:
            problems.append(f"joint {i}: mimics slot {mimic.map_index}, which is not an active joint")
        if not math.isfinite(mimic.multiplier) or mimic.multiplier == 0.0:
            problems.append(f"joint {i}: invalid multiplier {mimic.multiplier}")
        if not math.isfinite(mimic.offset):
            problems.append(f"joint {i}: invalid offset {mimic.offset}")

    return problems


def build_mimic_joints(joint_names: Sequence[str],
                       mimic_tags: Mapping[str, Mapping]) -> List[JointMimic]:
    """
    由 URDF 风格的 mimic 标签构建映射

    :param joint_names: 链中可动关节的名称（链顺序）
    :param mimic_tags: {从动关节名: {"joint": 主动关节名, "multiplier": m, "offset": o}}
    :return: 每个全关节一个 JointMimic
    """
    index_of = {name: i for i, name in enumerate(joint_names)}
    for name, tag in mimic_tags.items():
        if name not in index_of:
            raise ValueError(f"Mimic joint '{name}' is not part of the chain")
        driver = tag['joint']
        if driver not in index_of:
            raise ValueError(f"Joint '{name}' mimics unknown joint '{driver}'")
        if driver in mimic_tags:
            raise ValueError(f"Joint '{name}' mimics '{driver}', which is itself a mimic joint")

    slots: Dict[str, int] = {}
    for name in joint_names:
        if name not in mimic_tags:
            slots[name] = len(slots)

    mimic_joints: List[JointMimic] = []
    for name in joint_names:
        tag = mimic_tags.get(name)
        if tag is None:
            mimic_joints.append(JointMimic.active_joint(slots[name], name))
        else:
            mimic_joints.append(JointMimic.mimic_of(slots[tag['joint']],
                                                    tag.get('multiplier', 1.0),
                                                    tag.get('offset', 0.0),
                                                    name))
    return mimic_joints
