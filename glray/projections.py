"""
Camera models. The ray statements run at the start of the sample function
with pJittered (the jittered image plane position), rotationMatrix and
rayPos (the camera position) available. They declare vec3 rayDir and may
move rayPos.
"""

from glray import snippets
from glray.utils import to_float

class Projection:

    required_snippets = []

    def __init__(self):
        self.uniforms = []

    def update(self, program):
        pass

    def get_preamble(self):
        return ''

    def get_ray_statements(self):
        raise NotImplementedError

class PerspectiveRays(Projection):

    def get_ray_statements(self):
        return '  vec3 rayDir = rotationMatrix * normalize( vec3( pJittered, 1.0 ) );\n'

class PerspectiveDepthRays(Projection):
    """Thin lens depth of field, focused at focal_length"""

    required_snippets = [snippets.uniform_inside_disk]

    def __init__(self, focal_length=33.0, dof_spread=0.3):
        Projection.__init__(self)
        self.focal_length = focal_length
        self.dof_spread = dof_spread
        self.uniforms = ['focalLength', 'dofSpread']

    def update(self, program):
        program.set_uniform('focalLength', self.focal_length)
        program.set_uniform('dofSpread', self.dof_spread)

    def get_preamble(self):
        return 'uniform float focalLength;\n' + \
            'uniform float dofSpread;\n'

    def get_ray_statements(self):
        return """\
  vec2 dofOffset = dofSpread * uniformInsideDisk( pseudorandom(seed * 92.72 + 2.9), pseudorandom(seed * 192.72 + 12.9) );
  vec3 rayDir = rotationMatrix * normalize( vec3( pJittered - dofOffset / focalLength, 1.0 ) );
  rayPos = rayPos + rotationMatrix * vec3( dofOffset, 0.0 );
"""

class StereographicRays(Projection):

    def get_ray_statements(self):
        return """\
  p = pJittered * 5.0;
  vec3 rayDir = rotationMatrix * normalize( vec3( 2.0 * p.x, 2.0 * p.y, 1.0 - p.x * p.x - p.y * p.y ) );
"""

class OrthographicRays(Projection):

    def __init__(self, scale=90.0):
        Projection.__init__(self)
        self.scale = scale

    def get_ray_statements(self):
        return """\
  vec3 rayDir = rotationMatrix * vec3( 0.0, 0.0, 1.0 );
  rayPos = rayPos + rotationMatrix * vec3( pJittered, 0.0 ) * %s;
""" % to_float(self.scale)
