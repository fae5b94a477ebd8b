"""
The GL side: the accumulating fragment shader around the generated sample
function, and a thin wrapper of the compiled moderngl program that scene
components bind their uniforms through.
"""

import moderngl
import numpy
from glray import templates
from glray.compiler import SAMPLE_FUNCTION
from glray.errors import SceneConfigurationError, ShaderCompileError
from glray.utils import to_float

INTEGRATOR_UNIFORMS = ['time', 'weight', 'previousTexture', 'size']

TONEMAP_KINDS = ('gamma', 'reinhard', 'filmic')
TONEMAP_UNIFORMS = ['image', 'brightness']

VERTEX_SOURCE = templates.render('quad.vert')

def integrator_fragment_source(sample_source, name=SAMPLE_FUNCTION,
    num_samples=5):
    """
    Fragment shader that averages num_samples calls of the sample function
    and blends them with the previous image by the uniform weight
    """
    return templates.render('integrator.frag',
        source=sample_source,
        name=name,
        num_samples=num_samples,
        num_samples_float=to_float(num_samples))

def tonemap_fragment_source(kind='gamma'):
    """
    Fragment shader displaying the accumulated image scaled by the uniform
    brightness. Reinhard compresses the colors before the gamma correction
    and the filmic curve includes its own gamma.
    """
    if kind not in TONEMAP_KINDS:
        raise SceneConfigurationError("unknown tone mapping '%s'" % kind)
    return templates.render('tonemap.frag', kind=kind)

def accumulation_weight(samples):
    """Weight of the previous image when it already averages samples passes"""
    return samples / float(samples + 1)

def _uniform_value(value):
    value = numpy.asarray(value, dtype=float)
    if value.ndim == 0:
        return float(value)
    if value.ndim == 2:
        # GL matrices are column major
        value = value.T
    return tuple(float(x) for x in value.ravel())

class ShaderProgram:

    def __init__(self, ctx, vertex_source, fragment_source, uniform_names):
        self.ctx = ctx
        self.vertex_source = vertex_source
        self.fragment_source = fragment_source
        self.uniform_names = list(uniform_names)
        try:
            self.program = ctx.program(
                vertex_shader=vertex_source,
                fragment_shader=fragment_source)
        except moderngl.Error as e:
            raise ShaderCompileError(str(e), fragment_source)

    def _get_uniform(self, name):
        # unused uniforms are optimized out by the GL compiler
        return self.program.get(name, None)

    def set_uniform(self, name, value):
        uniform = self._get_uniform(name)
        if uniform is not None:
            uniform.value = _uniform_value(value)

    def bind_texture(self, name, unit, texture):
        texture.use(location=unit)
        uniform = self._get_uniform(name)
        if uniform is not None:
            uniform.value = unit

def build_program(ctx, scene_program, num_samples=5, dump_file=None):
    fragment_source = integrator_fragment_source(scene_program.source,
        num_samples=num_samples)

    if dump_file is not None:
        with open(dump_file, 'w') as f:
            f.write(fragment_source)

    return ShaderProgram(ctx, VERTEX_SOURCE, fragment_source,
        INTEGRATOR_UNIFORMS + list(scene_program.uniforms))

def build_tonemap_program(ctx, kind='gamma'):
    return ShaderProgram(ctx, VERTEX_SOURCE, tonemap_fragment_source(kind),
        TONEMAP_UNIFORMS)
