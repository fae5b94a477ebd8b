import numpy
from glray.traceable import VolumeTraceable
from glray import snippets
from glray.utils import to_vec3

class Box(VolumeTraceable):
    """Axis aligned box between the corners min_point and max_point"""

    glsl_name = 'box'
    required_snippets = [snippets.ray_intersect_aabb3, snippets.normal_fast_on_aabb3]

    def __init__(self, min_point, max_point, material, dynamic=False,
        two_sided=False, ids=None):
        VolumeTraceable.__init__(self, material, dynamic=dynamic,
            two_sided=two_sided, ids=ids)
        self.min = numpy.array(min_point, dtype=float)
        self.max = numpy.array(max_point, dtype=float)

        self.min_name = self.prefix + 'min'
        self.max_name = self.prefix + 'max'

        if dynamic:
            self.uniforms = [self.min_name, self.max_name]

    def update(self, program):
        if self.dynamic:
            program.set_uniform(self.min_name, tuple(self.min))
            program.set_uniform(self.max_name, tuple(self.max))

    def get_preamble(self):
        if self.dynamic:
            return 'uniform vec3 %s;\n' % self.min_name + \
                'uniform vec3 %s;\n' % self.max_name
        return ''

    def _corners(self):
        if self.dynamic:
            return self.min_name, self.max_name
        return to_vec3(self.min), to_vec3(self.max)

    def intersection_expression(self, ray_pos, ray_dir):
        min_corner, max_corner = self._corners()
        return 'rayIntersectAABB3( %s, %s, %s, %s )' % \
            (min_corner, max_corner, ray_pos, ray_dir)

    def outward_normal(self, hit_pos):
        if self.dynamic:
            center = '( ( %s + %s ) / 2.0 )' % (self.max_name, self.min_name)
            half_size = '( ( %s - %s ) / 2.0 )' % (self.max_name, self.min_name)
        else:
            center = to_vec3((self.max + self.min) * 0.5)
            half_size = to_vec3((self.max - self.min) * 0.5)
        return 'normalFastOnAABB3( %s, %s, %s )' % (center, half_size, hit_pos)

    def hit_test(self, ray_pos, ray_dir):
        ray_pos = numpy.array(ray_pos, dtype=float)
        ray_dir = numpy.array(ray_dir, dtype=float)
        with numpy.errstate(divide='ignore', invalid='ignore'):
            t_back = (self.min - ray_pos) / ray_dir
            t_front = (self.max - ray_pos) / ray_dir
        t_near = numpy.max(numpy.minimum(t_back, t_front))
        t_far = numpy.min(numpy.maximum(t_back, t_front))
        if t_near >= t_far:
            return numpy.inf
        if t_near > 0.00001:
            return t_near
        if self.two_sided and t_far > 0.00001:
            return t_far
        return numpy.inf
