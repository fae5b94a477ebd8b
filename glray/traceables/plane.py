import numpy
from glray.traceable import Traceable
from glray import snippets
from glray.utils import to_float, to_vec3

class Plane(Traceable):
    """The plane dot( normal, p ) = d, hit from both sides"""

    glsl_name = 'plane'
    required_snippets = [snippets.ray_intersect_plane3]

    def __init__(self, normal, d, material, dynamic=False, ids=None):
        Traceable.__init__(self, material, dynamic=dynamic, ids=ids)
        self.normal = tuple(float(x) for x in normal)
        self.d = float(d)

        self.normal_name = self.prefix + 'normal'
        self.d_name = self.prefix + 'd'

        if dynamic:
            self.uniforms = [self.normal_name, self.d_name]

    def update(self, program):
        if self.dynamic:
            program.set_uniform(self.normal_name, self.normal)
            program.set_uniform(self.d_name, self.d)

    def get_preamble(self):
        if self.dynamic:
            return 'uniform vec3 %s;\n' % self.normal_name + \
                'uniform float %s;\n' % self.d_name
        return 'const vec3 %s = %s;\n' % (self.normal_name, to_vec3(self.normal)) + \
            'const float %s = %s;\n' % (self.d_name, to_float(self.d))

    def intersection_expression(self, ray_pos, ray_dir):
        return 'rayIntersectPlane3( %s, %s, %s, %s )' % \
            (self.normal_name, self.d_name, ray_pos, ray_dir)

    def normal_expression(self, hit, hit_pos, ray_pos, ray_dir):
        return self.normal_name

    def hit_test(self, ray_pos, ray_dir):
        normal = numpy.array(self.normal)
        denominator = numpy.dot(normal, ray_dir)
        if denominator == 0:
            return numpy.inf
        t = (self.d - numpy.dot(normal, ray_pos)) / denominator
        if t > 0.00001:
            return t
        return numpy.inf
