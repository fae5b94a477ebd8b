import numpy
from glray.traceable import VolumeTraceable
from glray import snippets
from glray.utils import to_float, to_vec3

class Sphere(VolumeTraceable):
    """
    Sphere, optionally moving with the given velocity (units per unit of
    time) during the scene shutter interval for motion blur
    """

    glsl_name = 'sphere'

    def __init__(self, center, radius, material, dynamic=False,
        two_sided=False, velocity=None, ids=None):
        VolumeTraceable.__init__(self, material, dynamic=dynamic,
            two_sided=two_sided, ids=ids)
        self.center = numpy.array(center, dtype=float)
        self.radius = float(radius)
        self.velocity = velocity

        self.center_name = self.prefix + 'center'
        self.radius_name = self.prefix + 'radius'

        self.required_snippets = [snippets.ray_intersect_sphere, snippets.normal_on_sphere]
        if dynamic:
            self.uniforms = [self.center_name, self.radius_name]
        if velocity is not None:
            self.required_snippets.append(snippets.shutter_times)
            self.uniforms.append('times')

    def update(self, program):
        if self.dynamic:
            program.set_uniform(self.center_name, tuple(self.center))
            program.set_uniform(self.radius_name, self.radius)

    def get_preamble(self):
        if self.dynamic:
            return 'uniform vec3 %s;\n' % self.center_name + \
                'uniform float %s;\n' % self.radius_name
        return ''

    @property
    def center_value(self):
        if self.dynamic:
            center = self.center_name
        else:
            center = to_vec3(self.center)
        if self.velocity is not None:
            # a random moment of the exposure for each sample
            center = '( %s + %s * mix( times.x, times.y, pseudorandom(seed*14.53+1.6) ) )' % \
                (center, to_vec3(self.velocity))
        return center

    @property
    def radius_value(self):
        if self.dynamic:
            return self.radius_name
        return to_float(self.radius)

    def intersection_expression(self, ray_pos, ray_dir):
        return 'rayIntersectSphere( %s, %s, %s, %s )' % \
            (self.center_value, self.radius_value, ray_pos, ray_dir)

    def outward_normal(self, hit_pos):
        return 'normalOnSphere( %s, %s, %s )' % \
            (self.center_value, self.radius_value, hit_pos)

    def hit_test(self, ray_pos, ray_dir):
        ray_pos = numpy.array(ray_pos, dtype=float)
        ray_dir = numpy.array(ray_dir, dtype=float)
        to_sphere = ray_pos - self.center
        a = numpy.dot(ray_dir, ray_dir)
        b = 2 * numpy.dot(to_sphere, ray_dir)
        c = numpy.dot(to_sphere, to_sphere) - self.radius**2
        discriminant = b*b - 4*a*c
        if discriminant > 0.00001:
            sqt = numpy.sqrt(discriminant)
            ta = (-sqt - b) / (2*a)
            if ta > 0.00001:
                return ta
            # only two-sided spheres are hit from the inside
            tb = (sqt - b) / (2*a)
            if self.two_sided and tb > 0.00001:
                return tb
        return numpy.inf
