from glray.traceable import Traceable
from glray import snippets
from glray.utils import SMALL_EPSILON

class DistanceField(Traceable):
    """
    Body defined by a signed distance function, given as the name of a
    GLSL function float <field_name>( vec3 p ) and the snippet defining
    it. Rays are sphere traced with a fixed number of steps.
    """

    glsl_name = 'field'

    def __init__(self, field_name, field_snippet, material, steps=65,
        step_ratio=1.0, end_threshold=0.1, normal_offset=0.001,
        gradient_distance=0.0001, ids=None):
        Traceable.__init__(self, material, ids=ids)
        self.field_name = field_name

        self.marcher_name = self.prefix + 'March'
        self.normal_name = self.prefix + 'Normal'

        self.marcher = snippets.make_distance_field_marcher(
            self.marcher_name, field_name, steps=steps,
            step_ratio=step_ratio, end_threshold=end_threshold,
            required_snippets=[field_snippet], ids=ids)
        self.normal = snippets.make_distance_field_normal(
            self.normal_name, field_name, offset_distance=normal_offset,
            gradient_distance=gradient_distance,
            required_snippets=[field_snippet], ids=ids)

        self.required_snippets = [self.marcher, self.normal]

    def intersection_type(self):
        return 'vec2'

    def intersection_expression(self, ray_pos, ray_dir):
        return '%s( %s, %s )' % (self.marcher_name, ray_pos, ray_dir)

    def valid_intersection(self, hit):
        return '(%s.x > %s)' % (hit, SMALL_EPSILON)

    def distance(self, hit):
        return '%s.x' % hit

    def inside_expression(self, hit):
        # the field is negative just before the hit
        return '(%s.y < 0.0)' % hit

    def normal_expression(self, hit, hit_pos, ray_pos, ray_dir):
        return '( ( %s.y < 0.0 ? -1.0 : 1.0 ) * %s( %s, %s, %s ) )' % \
            (hit, self.normal_name, ray_pos, ray_dir, hit_pos)
