"""
数据交换功能实现：链描述、目标位姿的读取与求解结果的导出
"""
import json
import os
import numpy as np
from typing import Dict, List, Optional, Tuple
from scipy.spatial.transform import Rotation as R

from mimic_ik.model.chain import Chain
from mimic_ik.model.joint import JointNode, RevoluteJoint, PrismaticJoint, FixedJoint
from mimic_ik.model.mimic import JointMimic, build_mimic_joints
from mimic_ik.solver.status import IKResult
from mimic_ik.utils import make_frame


def _optional_limits(joint_data: Dict) -> Optional[Tuple[float, float]]:
    limits = joint_data.get('limits')
    if limits is None:
        return None
    return (float(limits[0]), float(limits[1]))


def create_joint(joint_data: Dict) -> JointNode:
    """
    根据 JSON 描述创建关节

    :param joint_data: {"name", "type", "offset", "axis"?, "limits"?, "quaternion"?}
    """
    name = joint_data['name']
    joint_type = joint_data['type']
    offset = np.array(joint_data.get('offset', [0.0, 0.0, 0.0]), dtype=np.float64)

    if joint_type == 'fixed':
        quat = joint_data.get('quaternion')
        return FixedJoint(name, offset, None if quat is None else np.array(quat, dtype=np.float64))
    elif joint_type == 'revolute':
        return RevoluteJoint(name, offset, np.array(joint_data['axis'], dtype=np.float64),
                             _optional_limits(joint_data))
    elif joint_type == 'prismatic':
        return PrismaticJoint(name, offset, np.array(joint_data['axis'], dtype=np.float64),
                              _optional_limits(joint_data))
    raise ValueError(f"Unknown joint type: {joint_type}")


def find_effector(node: JointNode) -> Optional[JointNode]:
    """
    自动查找末端执行器：寻找没有子节点的 FixedJoint
    """
    if isinstance(node, FixedJoint) and len(node.children) == 0:
        return node
    for child in node.children:
        result = find_effector(child)
        if result is not None:
            return result
    return None


def load_chain(json_path: str) -> Tuple[Chain, List[JointMimic]]:
    """
    从 JSON 加载关节树，构建从 root_name 到 effector_name 的链及从动关节映射

    JSON 格式：
    {
        "root_name": "base",
        "effector_name": "tool",            # 可选，缺省时取第一个无子节点的固定关节
        "joints": [
            {"name": "j1", "type": "revolute", "parent": "base", "offset": [0, 0, 0],
             "axis": [0, 0, 1], "limits": [-1.57, 1.57],
             "mimic": {"joint": "j0", "multiplier": 2.0, "offset": 0.0}},   # mimic 可选
            ...
        ]
    }

    :param json_path: 链描述文件路径
    :return: (链, 每个可动关节一个 JointMimic)
    """
    with open(json_path, 'r', encoding='utf-8') as f:
        data = json.load(f)

    joints_data = data['joints']
    joint_map: Dict[str, JointNode] = {}
    mimic_tags: Dict[str, Dict] = {}

    for joint_data in joints_data:
        joint = create_joint(joint_data)
        if joint.name in joint_map:
            raise ValueError(f"Duplicate joint name '{joint.name}'")
        joint_map[joint.name] = joint
        if joint_data.get('mimic') is not None:
            mimic_tags[joint.name] = joint_data['mimic']

    # 建立父子关系
    for joint_data in joints_data:
        parent_name = joint_data.get('parent')
        if parent_name is not None:
            if parent_name not in joint_map:
                raise ValueError(f"Parent '{parent_name}' not found for joint '{joint_data['name']}'")
            joint_map[parent_name].add_child(joint_map[joint_data['name']])

    root_name = data['root_name']
    if root_name not in joint_map:
        raise ValueError(f"Root node '{root_name}' not found")
    root = joint_map[root_name]

    effector_name = data.get('effector_name')
    if effector_name is None:
        effector = find_effector(root)
        if effector is None:
            raise ValueError("Cannot find an end effector (a FixedJoint without children)")
    elif effector_name not in joint_map:
        raise ValueError(f"Effector node '{effector_name}' not found")
    else:
        effector = joint_map[effector_name]

    chain = Chain.from_tree(root, effector)
    return chain, build_mimic_joints(chain.joint_names, mimic_tags)


def euler_to_transform(pos: np.ndarray, euler_deg: np.ndarray) -> np.ndarray:
    """
    将位置和欧拉角（度，XYZ顺序）转换为4x4变换矩阵

    :param pos: 位置 [x, y, z]（米）
    :param euler_deg: 欧拉角 [x, y, z]（度，内旋XYZ顺序）
    :return: 4x4变换矩阵
    """
    transform = np.identity(4, dtype=np.float64)
    transform[:3, :3] = R.from_euler('XYZ', np.deg2rad(euler_deg), degrees=False).as_matrix()
    transform[:3, 3] = pos
    return transform


def load_targets(json_path: str) -> List[np.ndarray]:
    """
    读取目标位姿列表

    每个元素为 {"pos": [x,y,z], "euler": [x,y,z]（度）} 或 {"pos": [x,y,z], "quaternion": [w,x,y,z]}，
    两者都没有时姿态为单位旋转。

    :return: 4x4 目标变换列表
    """
    with open(json_path, 'r', encoding='utf-8') as f:
        data = json.load(f)

    targets = []
    for item in data:
        pos = np.array(item['pos'], dtype=np.float64)
        if 'euler' in item:
            targets.append(euler_to_transform(pos, np.array(item['euler'], dtype=np.float64)))
        else:
            targets.append(make_frame(pos, item.get('quaternion', (1.0, 0.0, 0.0, 0.0))))
    return targets


def export_result(results: List[IKResult], chain: Chain, output_path: str,
                  accepted: Optional[List[bool]] = None):
    """
    导出求解结果 JSON

    :param results: 每个目标一个 IKResult
    :param chain: 运动学链（提供关节名称与类型）
    :param output_path: 输出文件路径
    :param accepted: 每个结果是否被调用者接受，None 时按 status.ok 判断
    """
    os.makedirs(os.path.dirname(os.path.abspath(output_path)), exist_ok=True)

    solutions = []
    for index, result in enumerate(results):
        joints_out = {}
        for joint, q in zip(chain.joints, result.q):
            joint_data = {'type': joint.joint_type}
            if isinstance(joint, RevoluteJoint):
                joint_data['angle'] = float(q)
            else:
                joint_data['displacement'] = float(q)
            joints_out[joint.name] = joint_data
        solutions.append({
            'target': index,
            'status': result.status.value,
            'accepted': result.status.ok if accepted is None else bool(accepted[index]),
            'joints': joints_out
        })

    with open(output_path, 'w', encoding='utf-8') as f:
        json.dump({'solutions': solutions}, f, indent=2, ensure_ascii=False)
