import numpy
from glray import ids as id_module
from glray.errors import SceneConfigurationError
from glray.utils import SMALL_EPSILON

class Traceable(object):
    """
    A Traceable represents a body that rays can hit. It is associated
    with a material and with GLSL code that computes the intersection of
    a ray and the body and the normal at that intersection.

    The generated sample function evaluates

        <intersection_type()> <prefix>hit = <intersection_expression(...)>;

    for every traceable and picks the nearest hit for which
    valid_intersection(hit) holds, as measured by distance(hit).
    """

    # used to build the prefix of the generated names
    glsl_name = 'traceable'

    required_snippets = []

    def __init__(self, material, dynamic=False, ids=None):
        if material is None:
            raise SceneConfigurationError(
                "%s needs a material" % type(self).__name__)
        self.id = id_module.allocator(ids).next_id('traceable')
        self.prefix = '%s%d' % (self.glsl_name, self.id)
        self.name = None
        self.material = material
        self.dynamic = dynamic
        self.uniforms = []

    @property
    def hit_name(self):
        return self.prefix + 'hit'

    def update(self, program):
        pass

    def get_preamble(self):
        return ''

    def intersection_type(self):
        return 'float'

    def intersection_expression(self, ray_pos, ray_dir):
        raise NotImplementedError

    def valid_intersection(self, hit):
        return '(%s > %s)' % (hit, SMALL_EPSILON)

    def distance(self, hit):
        return hit

    def inside_expression(self, hit):
        """None if the ray can never start inside this body"""
        return None

    def normal_expression(self, hit, hit_pos, ray_pos, ray_dir):
        raise NotImplementedError

    def hit_test(self, ray_pos, ray_dir):
        """
        Distance to the nearest forward intersection of the given ray
        computed on the CPU, or inf
        """
        return numpy.inf

class VolumeTraceable(Traceable):
    """
    Traceable whose intersection is a (near, far) pair of distances.
    Two-sided volumes can also be hit from the inside, where the normal
    is flipped to face the ray.
    """

    def __init__(self, material, dynamic=False, two_sided=False, ids=None):
        Traceable.__init__(self, material, dynamic=dynamic, ids=ids)
        self.two_sided = two_sided

    def intersection_type(self):
        return 'vec2'

    def valid_intersection(self, hit):
        if self.two_sided:
            # only the far hit has to be in front of us
            return '(%s.y > %s && %s.x < %s.y)' % (hit, SMALL_EPSILON, hit, hit)
        return '(%s.x > %s && %s.x < %s.y)' % (hit, SMALL_EPSILON, hit, hit)

    def distance(self, hit):
        if self.two_sided:
            return '(%s.x > %s ? %s.x : %s.y)' % (hit, SMALL_EPSILON, hit, hit)
        return '%s.x' % hit

    def inside_expression(self, hit):
        if self.two_sided:
            return '(%s.x < 0.0)' % hit
        return None

    def outward_normal(self, hit_pos):
        raise NotImplementedError

    def normal_expression(self, hit, hit_pos, ray_pos, ray_dir):
        normal = self.outward_normal(hit_pos)
        if self.two_sided:
            return '( sign( %s.x ) * %s )' % (hit, normal)
        return normal

def nearest_hit(traceables, ray_pos, ray_dir):
    """
    Returns (traceable, distance) of the nearest hit along the ray, or
    (None, inf). Like in the generated code, a later object only wins if
    it is strictly closer, so ties go to the first one.
    """
    nearest = None
    nearest_t = numpy.inf
    for traceable in traceables:
        t = traceable.hit_test(ray_pos, ray_dir)
        if t < nearest_t:
            nearest = traceable
            nearest_t = t
    return nearest, nearest_t
