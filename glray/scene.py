import numpy as np
from glray import camera
from glray.compiler import Compiler
from glray.traceable import nearest_hit
from glray.utils import normalize_tuple

class Scene:
    """
    Defines a 3D scene consisting of a camera, objects (traceables, each
    with a material), an environment and some rendering settings such as
    the number of bounces
    """

    def __init__(self, objects=None, projection=None, environment=None,
        bounces=5):
        self.objects = list(objects or [])
        self.projection = projection
        self.environment = environment
        self.bounces = bounces
        self.exposure = 1.0
        self.shutter_times = (0.0, 1.0)
        self.camera_position = (0.0, 0.0, 0.0)
        self.camera_direction = (0.0, 0.0, 1.0)
        self.camera_up = (0.0, 1.0, 0.0)

    def get_camera_rotmat(self):
        return camera.camera_rotmat(self.camera_direction, self.camera_up)

    def direct_camera_towards(self, target):
        self.camera_direction = np.array(target) - np.array(self.camera_position)

    def get_objects(self, name):
        return [obj for obj in self.objects if obj.name == name]

    def get_object(self, name):
        objs = self.get_objects(name)
        if len(objs) == 1: return objs[0]
        elif len(objs) == 0:
            raise KeyError("No object named '%s'" % name)
        else:
            raise KeyError("Multiple objects in the scene are called '%s'" % name)

    def delete_objects(self, name):
        self.objects[:] = [obj for obj in self.objects if obj.name != name]

    def add_object(self, traceable, name=None):
        traceable.name = name
        self.objects.append(traceable)
        return traceable

    def make_program(self):
        return Compiler(self).make_program()

    def pick(self, ray_pos, ray_dir):
        """The object hit first by the given ray (and the distance), if any"""
        return nearest_hit(self.objects, ray_pos, ray_dir)

    def pick_pixel(self, x, y):
        """
        Same as pick for the ray through the image plane position (x, y)
        of a perspective camera, (0, 0) being the center of the image
        """
        direction = normalize_tuple(np.dot(self.get_camera_rotmat(), (x, y, 1.0)))
        return self.pick(np.array(self.camera_position, dtype=float), direction)

    def update(self, program, scene_program=None):
        """
        Binds the camera, the shutter interval and the parameters of every
        component. The materials are taken from scene_program if given.
        """
        program.set_uniform('rotationMatrix', self.get_camera_rotmat())
        program.set_uniform('cameraPosition', tuple(self.camera_position))
        program.set_uniform('times', tuple(self.shutter_times))

        self.environment.update(program)
        self.projection.update(program)
        for obj in self.objects:
            obj.update(program)

        if scene_program is None:
            scene_program = self.make_program()
        for material in scene_program.materials:
            material.update(program)
