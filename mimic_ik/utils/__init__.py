from .quaternion_utils import (
    quaternion_to_rotation_matrix,
    rotation_matrix_to_quaternion,
    axis_angle_to_rotation_matrix,
    make_frame,
    is_valid_frame
)

__all__ = [
    'quaternion_to_rotation_matrix',
    'rotation_matrix_to_quaternion',
    'axis_angle_to_rotation_matrix',
    'make_frame',
    'is_valid_frame'
]
