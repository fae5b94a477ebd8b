import numpy
from glray.utils import normalize, vec_norm

def camera_rotmat(direction, up=(0, 1, 0)):
    """
    Rotation matrix with the columns right, up and forward, so that the
    image plane position (x, y, 1) maps to a direction around the given
    viewing direction
    """
    forward = normalize(numpy.array(direction, dtype=float))
    right = numpy.cross(numpy.array(up, dtype=float), forward)
    if vec_norm(right) == 0:
        raise ValueError("camera direction is parallel to the up vector")
    right = normalize(right)
    up = numpy.cross(forward, right)
    return numpy.column_stack((right, up, forward))
