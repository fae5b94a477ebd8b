"""
Materials (reflectance models).

A material takes part in the generated sample function in two phases.
When a ray hits an object, the hit statements of the object's material
decide what happens next by setting bounceType to the process id of a
terminal material kind (possibly after stashing instance parameters into
locals). After that, one dispatch branch per distinct process id runs the
process statements of that kind, which update attenuation, accumulation
and the next ray, or break out of the bounce loop.

Composite materials (WrapperMaterial, SwitchedMaterial and their
subclasses) have no process id of their own. They only emit hit
statements around those of the materials they wrap, and list those
materials in required_materials so that their dispatch branches exist.
"""

from glray import ids as id_module
from glray import snippets
from glray.snippets import Snippet
from glray.errors import SceneConfigurationError
from glray.utils import EPSILON, SMALL_EPSILON, AIR_IOR, \
    to_float, to_vec2, to_vec3, vec_equals, value_kind, \
    CONSTANT, DYNAMIC, CUSTOM

class Material:

    # GLSL snippets needed by the generated code of this material kind
    required_snippets = []

    # sub-materials whose dispatch branches must exist
    required_materials = []

    # terminal kinds own a process id (a bounceType value)
    terminal = False

    def __init__(self, ids=None):
        self.ids = id_module.allocator(ids)
        self.id = self.ids.next_id('material')
        self.uniforms = []

    @property
    def process_id(self):
        if not self.terminal:
            return None
        return self.ids.type_id('process', type(self))

    def update(self, program):
        pass

    def get_preamble(self):
        """Top level declarations, named uniquely for this instance"""
        return ''

    def get_locals(self):
        """
        Local variables of the sample function shared between the hit
        statements and the process statements of this material kind
        """
        return ''

    def get_hit_statements(self, hit_pos, normal, ray_pos, ray_dir):
        if self.terminal:
            return '      bounceType = %d;\n' % self.process_id
        return ''

    def get_process_statements(self, traceables):
        """Bounce behavior of every instance of this material kind"""
        return ''

def _check_material(material, owner):
    if material is None:
        raise SceneConfigurationError(
            "%s is missing a required sub-material" % owner)
    if not hasattr(material, 'get_hit_statements'):
        raise SceneConfigurationError(
            "%s: %r is not a material" % (owner, material))
    return material

def _statements(code, hit_pos, normal, ray_pos, ray_dir):
    if code is None:
        return ''
    if callable(code):
        return code(hit_pos, normal, ray_pos, ray_dir)
    return code

# ------------- composites

class WrapperMaterial(Material):
    """
    Emits the given statements before (and after) the hit statements of
    the wrapped material. The statements are either GLSL strings or
    functions (hit_pos, normal, ray_pos, ray_dir) -> GLSL string.
    """

    def __init__(self, material, before=None, after=None, snippets=(),
        ids=None):
        Material.__init__(self, ids=ids)
        self.material = _check_material(material, type(self).__name__)
        self.before = before
        self.after = after
        self.required_materials = [material]
        self.required_snippets = list(snippets)

    def get_hit_statements(self, hit_pos, normal, ray_pos, ray_dir):
        names = (hit_pos, normal, ray_pos, ray_dir)
        return _statements(self.before, *names) + \
            self.material.get_hit_statements(*names) + \
            _statements(self.after, *names)

class SwitchedMaterial(Material):
    """
    Randomly chooses between two materials at hit time. The ratio
    statements must assign the (already declared) float ratio, the
    probability of choosing material_a.
    """

    def __init__(self, material_a, material_b, ratio_statements,
        snippets=(), ids=None):
        Material.__init__(self, ids=ids)
        self.material_a = _check_material(material_a, type(self).__name__)
        self.material_b = _check_material(material_b, type(self).__name__)
        self.ratio_statements = ratio_statements
        self.required_materials = [material_a, material_b]
        self.required_snippets = list(snippets)

    def get_hit_statements(self, hit_pos, normal, ray_pos, ray_dir):
        names = (hit_pos, normal, ray_pos, ray_dir)
        return '      float ratio;\n' + \
            _statements(self.ratio_statements, *names) + \
            '      if ( pseudorandom(float(bounce) + seed*1.7243 - float(%d) ) < ratio ) {\n' % self.id + \
            self.material_a.get_hit_statements(*names) + \
            '      } else {\n' + \
            self.material_b.get_hit_statements(*names) + \
            '      }\n'

class FresnelComposite(SwitchedMaterial):
    """
    Chooses reflection_material with the probability given by the Fresnel
    reflectance of a smooth interface between the constant indices of
    refraction na (outside) and nb (inside).
    """

    def __init__(self, reflection_material, transmission_material, na, nb,
        ids=None):
        self.na = na
        self.nb = nb
        SwitchedMaterial.__init__(self,
            reflection_material,
            transmission_material,
            self._ratio_statements,
            [snippets.fresnel_dielectric,
             snippets.total_internal_reflection_cutoff],
            ids=ids)

    def _ratio_statements(self, hit_pos, normal, ray_pos, ray_dir):
        return """\
      vec2 fresnelIors = vec2( %(na)s, %(nb)s );
      if ( inside ) { fresnelIors = fresnelIors.yx; }
      if ( abs( dot( %(normal)s, %(dir)s ) ) < totalInternalReflectionCutoff( fresnelIors.x, fresnelIors.y ) + %(eps)s ) {
        ratio = 1.0;
      } else {
        vec2 reflectance = fresnelDielectric( %(dir)s, %(normal)s, refract( %(dir)s, %(normal)s, fresnelIors.x / fresnelIors.y ), fresnelIors.x, fresnelIors.y );
        ratio = ( reflectance.x + reflectance.y ) / 2.0;
      }
""" % {
            'na': to_float(self.na),
            'nb': to_float(self.nb),
            'normal': normal,
            'dir': ray_dir,
            'eps': SMALL_EPSILON
        }

class _VectorWrapper(WrapperMaterial):
    """
    Wrapper parametrized by one vec3 value, which is either a constant,
    a Dynamic (bound as a uniform) or a function generating a GLSL
    expression from (hit_pos, normal, ray_pos, ray_dir)
    """

    name = None
    trivial_value = None

    def __init__(self, material, value, ids=None):
        WrapperMaterial.__init__(self, material, self._apply, ids=ids)
        self.value = value
        self.kind = value_kind(value)
        self.value_name = '%s%d' % (self.name, self.id)
        if self.kind == DYNAMIC:
            self.uniforms = [self.value_name]

    @property
    def is_trivial(self):
        return self.kind == CONSTANT and \
            not isinstance(self.value, str) and \
            vec_equals(self.value, self.trivial_value)

    def update(self, program):
        if self.kind == DYNAMIC:
            program.set_uniform(self.value_name, self.value.value)

    def get_preamble(self):
        if self.kind == DYNAMIC:
            return 'uniform vec3 %s;\n' % self.value_name
        elif self.kind == CONSTANT and not self.is_trivial:
            return 'const vec3 %s = %s;\n' % \
                (self.value_name, to_vec3(self.value))
        return ''

    def _expression(self, hit_pos, normal, ray_pos, ray_dir):
        if self.kind == CUSTOM:
            return self.value(hit_pos, normal, ray_pos, ray_dir)
        return self.value_name

    def _apply(self, hit_pos, normal, ray_pos, ray_dir):
        if self.is_trivial:
            return ''
        return self.statement % \
            self._expression(hit_pos, normal, ray_pos, ray_dir)

class Attenuate(_VectorWrapper):
    """Multiplies the carried attenuation before the wrapped material"""
    name = 'attenuation'
    trivial_value = (1, 1, 1)
    statement = '      attenuation = attenuation * %s;\n'

class Emit(_VectorWrapper):
    """Adds (attenuated) emitted light before the wrapped material"""
    name = 'emission'
    trivial_value = (0, 0, 0)
    statement = '      accumulation = accumulation + attenuation * %s;\n'

# ------------- terminal kinds

class Diffuse(Material):
    """Lambertian reflection, cosine weighted sampling"""

    terminal = True
    required_snippets = [
        snippets.sample_towards_normal3,
        snippets.sample_dot_weight_on_hemisphere
    ]

    def get_process_statements(self, traceables):
        return """\
      rayDir = sampleTowardsNormal3( normal, sampleDotWeightOnHemiphere( pseudorandom(float(bounce) + seed*164.32+2.5), pseudorandom(float(bounce) + 7.233 * seed + 1.3) ) );
      rayPos = hitPos + %s * rayDir;
""" % EPSILON

class Absorb(Material):
    terminal = True

    def get_process_statements(self, traceables):
        return '      break;\n'

class Reflect(Material):
    terminal = True

    def get_process_statements(self, traceables):
        return """\
      rayDir = reflect( rayDir, normal );
      rayPos = hitPos + %s * rayDir;
""" % EPSILON

class Transmit(Material):
    """
    Refraction between the indices of refraction na (outside, towards the
    normal) and nb (inside). Both are numbers or GLSL expressions.
    Total internal reflection terminates the path.
    """

    terminal = True

    def __init__(self, na, nb, ids=None):
        Material.__init__(self, ids=ids)
        self.na = na
        self.nb = nb

    def get_hit_statements(self, hit_pos, normal, ray_pos, ray_dir):
        return """\
      transmitIORs = vec2( %s, %s );
      if ( inside ) {
        transmitIORs = transmitIORs.yx;
      }
      bounceType = %d;
""" % (to_float(self.na), to_float(self.nb), self.process_id)

    def get_locals(self):
        return '  vec2 transmitIORs;\n'

    def get_process_statements(self, traceables):
        return """\
      rayDir = refract( rayDir, normal, transmitIORs.x / transmitIORs.y );
      if ( dot( rayDir, rayDir ) == 0.0 ) { break; }
      rayPos = hitPos + %s * rayDir;
""" % EPSILON

class PhongSpecular(Material):
    """
    Glossy lobe around the mirror direction with exponent n, which is a
    number, a Dynamic or a function generating a GLSL expression.
    Samples that end up behind the lobe terminate the path.
    """

    terminal = True
    required_snippets = [
        snippets.sample_towards_normal3,
        snippets.sample_dot_weight_on_hemisphere,
        snippets.TWO_PI
    ]

    def __init__(self, n, ids=None):
        Material.__init__(self, ids=ids)
        self.n = n
        self.kind = value_kind(n)
        self.n_name = 'phongN%d' % self.id
        if self.kind == DYNAMIC:
            self.uniforms = [self.n_name]

    def update(self, program):
        if self.kind == DYNAMIC:
            program.set_uniform(self.n_name, self.n.value)

    def get_preamble(self):
        if self.kind == DYNAMIC:
            return 'uniform float %s;\n' % self.n_name
        elif self.kind == CONSTANT:
            return 'const float %s = %s;\n' % (self.n_name, to_float(self.n))
        return ''

    def get_hit_statements(self, hit_pos, normal, ray_pos, ray_dir):
        if self.kind == CUSTOM:
            n = self.n(hit_pos, normal, ray_pos, ray_dir)
        else:
            n = self.n_name
        return '      phongSpecularN = %s;\n' % n + \
            Material.get_hit_statements(self, hit_pos, normal, ray_pos, ray_dir)

    def get_locals(self):
        return '  float phongSpecularN;\n'

    def get_process_statements(self, traceables):
        return """\
      vec3 reflectDir = reflect( rayDir, normal );
      rayDir = sampleTowardsNormal3( reflectDir, sampleDotWeightOnHemiphere( pseudorandom(float(bounce) + seed*1642.32+2.52), pseudorandom(float(bounce) + 72.233 * seed + 1.32) ) );
      float dotty = dot( reflectDir, rayDir );
      float contrib = pow( abs( dotty ), phongSpecularN ) * ( phongSpecularN + 2.0 ) / ( 2.0 );
      if ( dotty < 0.0 ) { break; }
      attenuation = attenuation * contrib;
      rayPos = hitPos + %s * rayDir;
""" % EPSILON

class _IndexOfRefraction:
    """
    Scalar index of refraction parameter: a number, a GLSL expression
    string, a Dynamic (bound as a uniform) or an expression function.
    """

    def _init_ior(self, ior):
        self.ior = ior
        self.ior_name = 'ior%d' % self.id
        if value_kind(ior) == DYNAMIC:
            self.uniforms = [self.ior_name]

    def update(self, program):
        if value_kind(self.ior) == DYNAMIC:
            program.set_uniform(self.ior_name, self.ior.value)

    def get_preamble(self):
        if value_kind(self.ior) == DYNAMIC:
            return 'uniform float %s;\n' % self.ior_name
        return ''

    def _ior_expression(self, hit_pos, normal, ray_pos, ray_dir):
        kind = value_kind(self.ior)
        if kind == DYNAMIC:
            return self.ior_name
        elif kind == CUSTOM:
            return self.ior(hit_pos, normal, ray_pos, ray_dir)
        return to_float(self.ior)

    def get_hit_statements(self, hit_pos, normal, ray_pos, ray_dir):
        return '      iorNext = inside ? %s : %s;\n' % (
                to_float(AIR_IOR),
                self._ior_expression(hit_pos, normal, ray_pos, ray_dir)) + \
            '      bounceType = %d;\n' % self.process_id

class SmoothDielectric(_IndexOfRefraction, Material):
    """
    Glass-like interface: reflects or refracts at random, weighted by the
    Fresnel reflectance, and reflects on total internal reflection
    """

    terminal = True
    required_snippets = [
        snippets.sellmeier_dispersion,
        snippets.fresnel_dielectric,
        snippets.total_internal_reflection_cutoff
    ]

    def __init__(self, ior, ids=None):
        Material.__init__(self, ids=ids)
        self._init_ior(ior)

    def get_process_statements(self, traceables):
        return """\
      if ( abs( dot( normal, rayDir ) ) < totalInternalReflectionCutoff( ior, iorNext ) + %(small_eps)s ) {
        rayDir = reflect( rayDir, normal );
      } else {
        vec3 transmitDir = refract( rayDir, normal, ior / iorNext );
        vec2 reflectance = fresnelDielectric( rayDir, normal, transmitDir, ior, iorNext );
        if ( pseudorandom(float(bounce) + seed*1.7243 - 15.34) > ( reflectance.x + reflectance.y ) / 2.0 ) {
          rayDir = transmitDir;
          ior = iorNext;
        } else {
          rayDir = reflect( rayDir, normal );
        }
      }
      rayPos = hitPos + %(eps)s * rayDir;
""" % { 'eps': EPSILON, 'small_eps': SMALL_EPSILON }

class ShinyBlack(_IndexOfRefraction, Material):
    """
    Dielectric coat over a black body: always reflects, attenuated by
    the Fresnel reflectance
    """

    terminal = True
    required_snippets = [
        snippets.sellmeier_dispersion,
        snippets.fresnel_dielectric,
        snippets.total_internal_reflection_cutoff
    ]

    def __init__(self, ior, ids=None):
        Material.__init__(self, ids=ids)
        self._init_ior(ior)

    def get_process_statements(self, traceables):
        return """\
      if ( abs( dot( normal, rayDir ) ) < totalInternalReflectionCutoff( ior, iorNext ) + %(small_eps)s ) {
        rayDir = reflect( rayDir, normal );
      } else {
        vec3 transmitDir = refract( rayDir, normal, ior / iorNext );
        vec2 reflectance = fresnelDielectric( rayDir, normal, transmitDir, ior, iorNext );
        attenuation = attenuation * ( reflectance.x + reflectance.y ) / 2.0;
        rayDir = reflect( rayDir, normal );
      }
      rayPos = hitPos + %(eps)s * rayDir;
""" % { 'eps': EPSILON, 'small_eps': SMALL_EPSILON }

class Metal(Material):
    """
    Conductor with the complex index of refraction ior = (n, k), given as
    a pair, a Dynamic pair or a GLSL vec2 expression
    """

    terminal = True
    required_snippets = [snippets.fresnel]

    def __init__(self, ior, ids=None):
        Material.__init__(self, ids=ids)
        self.ior = ior
        self.ior_name = 'iorComplex%d' % self.id
        if value_kind(ior) == DYNAMIC:
            self.uniforms = [self.ior_name]

    def update(self, program):
        if value_kind(self.ior) == DYNAMIC:
            program.set_uniform(self.ior_name, self.ior.value)

    def get_preamble(self):
        if value_kind(self.ior) == DYNAMIC:
            return 'uniform vec2 %s;\n' % self.ior_name
        return ''

    def get_hit_statements(self, hit_pos, normal, ray_pos, ray_dir):
        kind = value_kind(self.ior)
        if kind == DYNAMIC:
            ior = self.ior_name
        elif kind == CUSTOM:
            ior = self.ior(hit_pos, normal, ray_pos, ray_dir)
        else:
            ior = to_vec2(self.ior)
        return '      iorComplex = %s;\n' % ior + \
            Material.get_hit_statements(self, hit_pos, normal, ray_pos, ray_dir)

    def get_locals(self):
        return '  vec2 iorComplex;\n'

    def get_process_statements(self, traceables):
        return """\
      vec2 reflectance = fresnel( rayDir, normal, ior, iorComplex.x, iorComplex.y );
      attenuation = attenuation * ( reflectance.x + reflectance.y ) / 2.0;
      rayDir = reflect( rayDir, normal );
      rayPos = hitPos + %s * rayDir;
""" % EPSILON

# the sampler uniforms are shared by every OakFloor instance
_oak_floor_textures = Snippet("""\
uniform sampler2D oakFloorDiffuse;
uniform sampler2D oakFloorDirt;
uniform sampler2D oakFloorNormal;
""")

class OakFloor(Material):
    """
    Varnished wooden floor on the y = 0 plane: a glossy Fresnel-weighted
    coat over a diffuse wood texture with a normal map, grass outside
    the 700 x 700 floor area. The textures are bound to units 2, 3, 4.
    """

    terminal = True
    required_snippets = [
        _oak_floor_textures,
        snippets.fresnel_dielectric,
        snippets.sample_dot_weight_on_hemisphere,
        snippets.sample_towards_normal3,
        snippets.TWO_PI
    ]

    texture_units = {
        'oakFloorDiffuse': 2,
        'oakFloorDirt': 3,
        'oakFloorNormal': 4
    }

    def __init__(self, diffuse_texture, dirt_texture, normal_texture,
        ids=None):
        Material.__init__(self, ids=ids)
        self.textures = {
            'oakFloorDiffuse': diffuse_texture,
            'oakFloorDirt': dirt_texture,
            'oakFloorNormal': normal_texture
        }
        self.uniforms = ['oakFloorDiffuse', 'oakFloorDirt', 'oakFloorNormal']

    def update(self, program):
        for name in self.uniforms:
            program.bind_texture(name, self.texture_units[name],
                self.textures[name])

    def get_process_statements(self, traceables):
        return """\
      bool onFloor = abs( hitPos.x ) <= 350.0 && abs( hitPos.z ) <= 350.0;
      if ( onFloor ) {
        vec3 fakeNormal = normalize( texture( oakFloorNormal, %(coord)s ).rbg * 2.0 - 1.0 );
        vec3 diffuseTex = pow( abs( texture( oakFloorDiffuse, %(coord)s ).rgb ), vec3( %(gamma)s ) );
        if ( dot( fakeNormal, rayDir ) > 0.0 ) { fakeNormal = normal; }
        vec3 transmitDir = refract( rayDir, normal, 1.0 / %(ior)s );
        vec2 reflectance = fresnelDielectric( rayDir, normal, transmitDir, 1.0, %(ior)s );
        bool didReflect = false;
        if ( pseudorandom(float(bounce) + seed*1.17243 - 2.3 ) < ( reflectance.x + reflectance.y ) / 2.0 ) {
          vec3 dirtTex = pow( abs( texture( oakFloorDirt, %(coord)s ).rgb ), vec3( %(gamma)s ) ) * 0.4 + 0.6;
          attenuation = attenuation * dirtTex * ( pow( abs( diffuseTex.g ), 1.0 / %(gamma)s ) );
          vec3 reflectDir = reflect( rayDir, fakeNormal );
          rayDir = sampleTowardsNormal3( reflectDir, sampleDotWeightOnHemiphere( pseudorandom(float(bounce) + seed*1642.32+2.52 - 2.3), pseudorandom(float(bounce) + 72.233 * seed + 1.32 - 2.3) ) );
          if ( rayDir.y > 0.0 ) {
            didReflect = true;
            float reflectDot = dot( reflectDir, rayDir );
            if ( reflectDot < 0.0 ) { break; }
            float contrib = pow( abs( reflectDot ), %(n)s ) * ( %(n)s + 2.0 ) / ( 2.0 );
            attenuation = attenuation * contrib;
          }
        }
        if ( !didReflect ) {
          attenuation = attenuation * diffuseTex;
          rayDir = sampleTowardsNormal3( fakeNormal, sampleDotWeightOnHemiphere( pseudorandom(float(bounce) + seed*164.32+2.5 - 2.3), pseudorandom(float(bounce) + 7.233 * seed + 1.3 - 2.3) ) );
          if ( rayDir.y < 0.0 ) { rayDir.y = -rayDir.y; }
        }
      } else {
        attenuation = attenuation * pow( vec3( 74.0, 112.0, 25.0 ) / 255.0, vec3( 1.0 / 2.2 ) ) * 0.5;
        rayDir = sampleTowardsNormal3( normal, sampleDotWeightOnHemiphere( pseudorandom(float(bounce) + seed*164.32+2.5 - 2.3), pseudorandom(float(bounce) + 7.233 * seed + 1.3 - 2.3) ) );
      }
      rayPos = hitPos + %(eps)s * rayDir;
""" % {
            # 1 / 254
            'coord': 'hitPos.xz * 0.003937007874015748',
            'gamma': '2.2',
            'ior': '1.5',
            'n': '50.0',
            'eps': EPSILON
        }

class SoccerBall(Material):
    """
    Truncated icosahedron pattern (black pentagons, white hexagons) on a
    sphere, with stitched seams and a glossy coat. The pattern is
    computed from the normal, so the object should be a sphere around
    the origin of its own coordinates.
    """

    terminal = True
    required_snippets = [
        snippets.sample_dot_weight_on_hemisphere,
        snippets.sample_towards_normal3,
        snippets.fresnel_dielectric,
        snippets.closest_icosahedron_point,
        snippets.closest_dodecahedron_point,
        snippets.PHI,
        snippets.INV_PHI,
        snippets.HALF_PI,
        snippets.SQRT_5,
        snippets.INV_2_SQRT_2
    ]

    def get_process_statements(self, traceables):
        return """\
      vec3 ico = closestIcosahedronPoint( normal );
      vec3 dodeca = closestDodecahedronPoint( normal );
      vec3 crossed = cross( ico, dodeca );
      vec3 fakeNormal;
      vec3 tileNormal = INV_2_SQRT_2 * ( SQRT_5 * ico - PHI * PHI * dodeca );
      vec3 boundaryNormal1 = 0.25 * ( PHI * ico - SQRT_5 * dodeca + PHI * crossed );
      vec3 boundaryNormal2 = 0.25 * ( PHI * ico - SQRT_5 * dodeca - PHI * crossed );
      float edgeCloseness = abs( dot( tileNormal, normal ) + 0.07 );
      bool isInBlack = dot( tileNormal, normal ) > -0.07;
      vec3 stitchDir = boundaryNormal1 - boundaryNormal2;
      if ( !isInBlack ) {
        float b1 = abs( dot( boundaryNormal1, normal ) );
        float b2 = abs( dot( boundaryNormal2, normal ) );
        if ( b1 < edgeCloseness ) {
          edgeCloseness = b1;
          stitchDir = ico - ( -0.5 * ico + (PHI + 1.0) / 2.0 * dodeca + 0.5 * crossed );
        }
        if ( b2 < edgeCloseness ) {
          edgeCloseness = b2;
          stitchDir = ico - ( -0.5 * ico + (PHI + 1.0) / 2.0 * dodeca - 0.5 * crossed );
        }
      }
      float edgeFactor = edgeCloseness > 0.04 ? 0.0 : ( ( 0.92 + 0.08 * sin( 200.0 * dot( normal, stitchDir ) ) ) * ( 1.0 + cos( edgeCloseness / 0.04  * HALF_PI + HALF_PI ) ) );
      float faceFactor = max( 0.0, 0.3 - edgeCloseness / 0.5 );
      fakeNormal = normalize( normal - ( 0.5 * edgeFactor * edgeFactor + faceFactor ) * ( isInBlack ? ico : dodeca ) );
      vec3 transmitDir = refract( rayDir, fakeNormal, 1.0 / %(ior)s );
      vec2 reflectance = fresnelDielectric( rayDir, fakeNormal, transmitDir, 1.0, %(ior)s );
      bool didReflect = false;
      if ( pseudorandom(float(bounce) + seed*1.17243 - 2.3 ) < ( reflectance.x + reflectance.y ) / 2.0 ) {
        vec3 reflectDir = reflect( rayDir, fakeNormal );
        rayDir = sampleTowardsNormal3( reflectDir, sampleDotWeightOnHemiphere( pseudorandom(float(bounce) + seed*164.32+2.5 - 2.3), pseudorandom(float(bounce) + 7.233 * seed + 1.3 - 2.3) ) );
        if ( dot( rayDir, normal ) > 0.0 ) {
          float reflectDot = dot( reflectDir, rayDir );
          if ( reflectDot < 0.0 ) { break; }
          float contrib = pow( abs( reflectDot ), %(n)s ) * ( %(n)s + 2.0 ) / ( 2.0 );
          attenuation = attenuation * contrib;
          didReflect = true;
        }
      }
      if ( !didReflect ) {
        if ( isInBlack ) {
          attenuation = attenuation * 0.05;
        }
        attenuation = attenuation * ( 1.0 - 0.7 * pow( abs( edgeFactor ), 7.0 ) );
        rayDir = sampleTowardsNormal3( fakeNormal, sampleDotWeightOnHemiphere( pseudorandom(float(bounce) + seed*164.32+2.5), pseudorandom(float(bounce) + 7.233 * seed + 1.3) ) );
        if ( edgeFactor >= 1.0 ) {
          attenuation = attenuation * 0.1;
          rayDir = sampleTowardsNormal3( normal, sampleDotWeightOnHemiphere( pseudorandom(float(bounce) + seed*164.32+2.5), pseudorandom(float(bounce) + 7.233 * seed + 1.3) ) );
        }
      }
      rayPos = hitPos + %(eps)s * rayDir;
""" % { 'ior': '1.4', 'n': '30.0', 'eps': EPSILON }
