"""
Environment lighting: what a ray that hits nothing collects.

The environment statements run inside the bounce loop when no object was
hit and may use rayDir, attenuation and accumulation. The loop ends after
them.
"""

from glray import snippets
from glray.errors import SceneConfigurationError
from glray.utils import to_float, to_vec3, value_kind, DYNAMIC

class Environment:

    required_snippets = []

    def __init__(self):
        self.uniforms = []

    def update(self, program):
        pass

    def get_preamble(self):
        return ''

    def get_environment_statements(self):
        raise NotImplementedError

class ProceduralEnvironment(Environment):
    """Arbitrary GLSL statements, e.g. a sky gradient"""

    def __init__(self, statements, snippets=()):
        Environment.__init__(self)
        self.statements = statements
        self.required_snippets = list(snippets)

    def get_environment_statements(self):
        return self.statements

class ConstantEnvironment(Environment):
    """Radiance that is the same in every direction"""

    def __init__(self, radiance):
        Environment.__init__(self)
        self.radiance = radiance
        if value_kind(radiance) == DYNAMIC:
            self.uniforms = ['environmentRadiance']

    def update(self, program):
        if value_kind(self.radiance) == DYNAMIC:
            program.set_uniform('environmentRadiance', self.radiance.value)

    def get_preamble(self):
        if value_kind(self.radiance) == DYNAMIC:
            return 'uniform vec3 environmentRadiance;\n'
        return ''

    def get_environment_statements(self):
        if value_kind(self.radiance) == DYNAMIC:
            radiance = 'environmentRadiance'
        else:
            radiance = to_vec3(self.radiance)
        return '      accumulation = accumulation + attenuation * %s;\n' % radiance

class TextureEnvironment(Environment):
    """
    Environment map bound to texture unit 1, either an equirectangular
    ('rectilinear') image, optionally covering only the upper half of the
    sphere, or a cube map. rotation turns the map around the vertical axis
    (in turns).
    """

    kinds = ('rectilinear', 'cubemap')
    texture_unit = 1

    def __init__(self, texture, kind='rectilinear', multiplier=1.0,
        rotation=0.0, half=False):
        Environment.__init__(self)
        if kind not in self.kinds:
            raise SceneConfigurationError(
                "unknown environment texture type '%s'" % kind)
        self.required_snippets = [snippets.PI, snippets.TWO_PI]
        if kind == 'cubemap':
            self.required_snippets.append(snippets.rotate_y)
        self.texture = texture
        self.kind = kind
        self.multiplier = multiplier
        self.rotation = rotation
        self.half = half
        self.uniforms = ['envTexture', 'envRotation']

    def update(self, program):
        program.bind_texture('envTexture', self.texture_unit, self.texture)
        program.set_uniform('envRotation', self.rotation)

    def get_preamble(self):
        sampler = 'samplerCube' if self.kind == 'cubemap' else 'sampler2D'
        return 'uniform %s envTexture;\n' % sampler + \
            'uniform float envRotation;\n'

    def get_environment_statements(self):
        if self.kind == 'cubemap':
            lookup = 'texture( envTexture, rotateY( rayDir, TWO_PI * envRotation ) ).rgb'
        else:
            coord = 'vec2( -atan( rayDir.z, rayDir.x ) / TWO_PI + 0.5 + envRotation, ( 0.5 - asin( rayDir.y ) / PI )%s )' \
                % (' * 2.0' if self.half else '')
            lookup = 'texture( envTexture, %s ).rgb' % coord
        return '      accumulation = accumulation + attenuation * %s * %s;\n' \
            % (lookup, to_float(self.multiplier))
