import os
import re
import tempfile
import unittest
import numpy
import moderngl

from glray import ids, snippets, program
from glray.snippets import Snippet, flatten
from glray.errors import CyclicSnippetError, SceneConfigurationError, \
    ShaderCompileError
from glray.materials import Material, WrapperMaterial, SwitchedMaterial, \
    FresnelComposite, Attenuate, Emit, Diffuse, Absorb, Reflect, Transmit, \
    PhongSpecular, SmoothDielectric, ShinyBlack, Metal, OakFloor, SoccerBall
from glray.traceables import Plane, Box, Sphere, DistanceField
from glray.traceable import nearest_hit
from glray.environments import ConstantEnvironment, TextureEnvironment, \
    ProceduralEnvironment
from glray.projections import PerspectiveRays, PerspectiveDepthRays, \
    OrthographicRays, StereographicRays
from glray.compiler import assemble, record_materials
from glray.camera import camera_rotmat
from glray.scene import Scene
from glray.default_scenes import DefaultScene, make_room, make_three_spheres
from glray.utils import Dynamic, to_float, to_vec2, to_vec3

EPSILON = 1e-9

class FakeProgram:
    """Records what the components bind"""

    def __init__(self):
        self.uniforms = {}
        self.textures = {}

    def set_uniform(self, name, value):
        self.uniforms[name] = value

    def bind_texture(self, name, unit, texture):
        self.textures[name] = (unit, texture)

class FixedDistance:

    def __init__(self, t):
        self.t = t

    def hit_test(self, ray_pos, ray_dir):
        return self.t

def sphere_scene(material, environment=None, bounces=3, **kwargs):
    if environment is None:
        environment = ConstantEnvironment((0.5, 0.6, 0.7))
    sphere = Sphere((0, 0, 5), 1.0, material)
    return sphere, assemble([sphere], PerspectiveRays(), environment,
        bounces, **kwargs)

class TestIds(unittest.TestCase):

    def test_counters(self):
        allocator = ids.IdAllocator()
        self.assertEqual(allocator.next_id('snippet'), 1)
        self.assertEqual(allocator.next_id('snippet'), 2)
        self.assertEqual(allocator.next_id('material'), 1)

        allocator.reset()
        self.assertEqual(allocator.next_id('snippet'), 1)

    def test_type_ids(self):
        allocator = ids.IdAllocator()
        a = allocator.type_id('process', Diffuse)
        b = allocator.type_id('process', Reflect)
        self.assertNotEqual(a, b)
        self.assertEqual(allocator.type_id('process', Diffuse), a)

    def test_injected_allocator(self):
        allocator = ids.IdAllocator(first=100)
        self.assertEqual(Snippet('x', ids=allocator).id, 100)
        self.assertEqual(Diffuse(ids=allocator).id, 100)
        self.assertEqual(Diffuse(ids=allocator).id, 101)

class TestSnippets(unittest.TestCase):

    def setUp(self):
        ids.reset()

    def test_diamond(self):
        a = Snippet('A')
        b = Snippet('B', [a])
        c = Snippet('C', [a])
        d = Snippet('D', [b, c])

        self.assertEqual(str(d), 'ABCD')
        self.assertEqual(str(b), 'AB')
        self.assertEqual(d.flatten(), flatten(d))

    def test_declared_order(self):
        a = Snippet('A')
        b = Snippet('B', [a])
        c = Snippet('C', [a])
        self.assertEqual(str(Snippet('E', [c, b])), 'ACBE')

    def test_dependencies_first(self):
        root = snippets.sample_uniform_on_hemisphere
        source = str(root)
        self.assertTrue(source.index('#define TWO_PI') <
            source.index('vec3 sampleUniformOnSphere(') <
            source.index('vec3 sampleUniformOnHemisphere('))

    def test_identity_not_content(self):
        x1 = Snippet('X')
        x2 = Snippet('X')
        self.assertNotEqual(x1.id, x2.id)
        self.assertEqual(str(Snippet('Y', [x1, x2, x1])), 'XXY')

    def test_deterministic(self):
        root = Snippet('main', [snippets.sample_fresnel_dielectric,
            snippets.sample_towards_normal3, snippets.box_muller])
        self.assertEqual(flatten(root), flatten(root))

    def test_each_once(self):
        root = Snippet('main', [snippets.box_muller, snippets.uniform_inside_disk,
            snippets.sample_dot_weight_on_hemisphere])
        self.assertEqual(str(root).count('#define TWO_PI'), 1)

    def test_cycle(self):
        a = Snippet('A')
        b = Snippet('B', [a])
        a.dependencies = (b,)
        with self.assertRaises(CyclicSnippetError) as cm:
            flatten(Snippet('root', [b]))
        self.assertEqual([s.id for s in cm.exception.path], [b.id, a.id, b.id])

    def test_self_cycle(self):
        a = Snippet('A')
        a.dependencies = (a,)
        self.assertRaises(CyclicSnippetError, flatten, a)

    def test_distance_field_functions(self):
        field = Snippet('float field( vec3 p ) { return length( p ) - 1.0; }\n')
        marcher = snippets.make_distance_field_marcher('march', 'field',
            steps=10, required_snippets=[field])
        normal = snippets.make_distance_field_normal('fieldNormal', 'field',
            required_snippets=[field])

        source = str(Snippet('', [marcher, normal]))
        self.assertEqual(source.count('float field('), 1)
        self.assertIn('tests < 10;', source)
        self.assertTrue(source.index('vec3 rayT(') < source.index('vec2 march('))
        self.assertIn('vec3 fieldNormal( vec3 rayPos, vec3 rayDir, vec3 hitPos )', source)

    def test_four_dimensional_functions(self):
        root = Snippet('main', [snippets.sample_basis4,
            snippets.sample_uniform_on_3hemisphere,
            snippets.sample_uniform_on_3sphere, snippets.ray_intersect_aabb4])
        source = str(root)
        self.assertEqual(source.count('vec2 boxMuller('), 1)
        self.assertTrue(source.index('mat4 constructBasis4Ordered(') <
            source.index('mat4 constructBasis4(') <
            source.index('vec4 sampleBasis4( mat4 basis'))
        self.assertIn('vec2 rayIntersectAABB4(', source)
        self.assertIn('vec4 normalOn3Sphere(', str(snippets.normal_on_3sphere))

class TestUtils(unittest.TestCase):

    def test_literals(self):
        self.assertEqual(to_float(1), '1.0')
        self.assertEqual(to_float('iorNext'), 'iorNext')
        self.assertEqual(to_vec3(0.5), 'vec3(0.5,0.5,0.5)')
        self.assertEqual(to_vec3((1, 2, 3)), 'vec3(1.0,2.0,3.0)')
        self.assertEqual(to_vec2((0.47, 2.83)), 'vec2(0.47,2.83)')
        self.assertRaises(ValueError, to_vec3, (1, 2))

class TestMaterials(unittest.TestCase):

    def setUp(self):
        ids.reset()

    def test_process_ids(self):
        kinds = [Diffuse, Absorb, Reflect, SoccerBall]
        process_ids = [kind().process_id for kind in kinds]
        self.assertEqual(len(set(process_ids)), len(kinds))

        # per type, not per instance
        self.assertEqual(Diffuse().process_id, Diffuse().process_id)
        self.assertEqual(Transmit(1.0, 1.5).process_id,
            Transmit(1.0, 1.3).process_id)

    def test_composites_have_no_process_id(self):
        self.assertIsNone(Attenuate(Diffuse(), 0.5).process_id)
        self.assertIsNone(SwitchedMaterial(Diffuse(), Reflect(), '').process_id)
        self.assertIsNone(WrapperMaterial(Diffuse()).process_id)

    def test_unique_preamble_names(self):
        a = Attenuate(Diffuse(), (0.5, 0.5, 0.5))
        b = Attenuate(Diffuse(), (0.5, 0.5, 0.5))
        self.assertNotEqual(a.get_preamble(), b.get_preamble())
        self.assertIn('const vec3 attenuation%d = vec3(0.5,0.5,0.5);' % a.id,
            a.get_preamble())

        p = PhongSpecular(10.0)
        q = PhongSpecular(20.0)
        self.assertNotEqual(p.get_preamble(), q.get_preamble())

    def test_trivial_values(self):
        diffuse = Diffuse()
        for material in [Attenuate(diffuse, 1.0), Emit(diffuse, (0, 0, 0))]:
            self.assertEqual(material.get_preamble(), '')
            self.assertEqual(
                material.get_hit_statements('hitPos', 'normal', 'rayPos', 'rayDir'),
                diffuse.get_hit_statements('hitPos', 'normal', 'rayPos', 'rayDir'))

    def test_dynamic_value(self):
        color = Dynamic((1.0, 0.5, 0.25))
        material = Emit(Absorb(), color)
        name = 'emission%d' % material.id

        self.assertEqual(material.uniforms, [name])
        self.assertIn('uniform vec3 %s;' % name, material.get_preamble())
        self.assertIn('accumulation = accumulation + attenuation * %s;' % name,
            material.get_hit_statements('hitPos', 'normal', 'rayPos', 'rayDir'))

        fake = FakeProgram()
        material.update(fake)
        self.assertEqual(fake.uniforms[name], (1.0, 0.5, 0.25))
        color.value = (0.0, 0.0, 1.0)
        material.update(fake)
        self.assertEqual(fake.uniforms[name], (0.0, 0.0, 1.0))

    def test_custom_value(self):
        material = Attenuate(Diffuse(),
            lambda hit_pos, normal, ray_pos, ray_dir: 'abs( %s )' % normal)
        self.assertEqual(material.get_preamble(), '')
        self.assertEqual(material.uniforms, [])
        self.assertIn('attenuation = attenuation * abs( n );',
            material.get_hit_statements('p', 'n', 'rp', 'rd'))

    def test_wrapper_order(self):
        material = WrapperMaterial(Reflect(), before='BEFORE\n',
            after=lambda p, n, rp, rd: 'AFTER %s\n' % n)
        statements = material.get_hit_statements('p', 'n', 'rp', 'rd')
        self.assertTrue(statements.index('BEFORE') <
            statements.index('bounceType') < statements.index('AFTER n'))

    def test_switch(self):
        a = Diffuse()
        b = Reflect()
        material = SwitchedMaterial(a, b, '      ratio = 0.25;\n')
        self.assertEqual(material.required_materials, [a, b])

        statements = material.get_hit_statements('p', 'n', 'rp', 'rd')
        self.assertIn('float(%d)' % material.id, statements)
        self.assertTrue(statements.index('ratio = 0.25;') <
            statements.index('bounceType = %d;' % a.process_id) <
            statements.index('bounceType = %d;' % b.process_id))

    def test_fresnel_composite_uses_given_names(self):
        material = FresnelComposite(Reflect(), Diffuse(), 1.0, 1.5)
        statements = material.get_hit_statements('p', 'myNormal', 'rp', 'myDir')
        self.assertIn('vec2( 1.0, 1.5 )', statements)
        self.assertIn('dot( myNormal, myDir )', statements)
        self.assertIn(snippets.fresnel_dielectric, material.required_snippets)

    def test_missing_sub_material(self):
        self.assertRaises(SceneConfigurationError,
            SwitchedMaterial, Diffuse(), None, '')
        self.assertRaises(SceneConfigurationError,
            FresnelComposite, None, Diffuse(), 1.0, 1.5)
        self.assertRaises(SceneConfigurationError, Attenuate, None, 0.5)
        self.assertRaises(SceneConfigurationError,
            WrapperMaterial, 'not a material')

    def test_ior_parameters(self):
        constant = SmoothDielectric(1.5)
        self.assertIn('iorNext = inside ? 1.0002771 : 1.5;',
            constant.get_hit_statements('p', 'n', 'rp', 'rd'))

        expression = ShinyBlack('sellmeierDispersion( 1.03961212, 0.231792344, 1.01046945, 0.00600069867, 0.0200179144, 103.560653, 550.0 )')
        self.assertIn('sellmeierDispersion(',
            expression.get_hit_statements('p', 'n', 'rp', 'rd'))

        dynamic = SmoothDielectric(Dynamic(1.33))
        self.assertEqual(dynamic.uniforms, ['ior%d' % dynamic.id])
        fake = FakeProgram()
        dynamic.update(fake)
        self.assertEqual(fake.uniforms['ior%d' % dynamic.id], 1.33)

        metal = Metal((0.47, 2.83))
        self.assertIn('iorComplex = vec2(0.47,2.83);',
            metal.get_hit_statements('p', 'n', 'rp', 'rd'))
        self.assertEqual(metal.get_locals(), '  vec2 iorComplex;\n')

    def test_phong_exponent(self):
        custom = PhongSpecular(lambda p, n, rp, rd: '( 10.0 + %s.y )' % p)
        self.assertEqual(custom.get_preamble(), '')
        self.assertIn('phongSpecularN = ( 10.0 + p.y );',
            custom.get_hit_statements('p', 'n', 'rp', 'rd'))

        dynamic = PhongSpecular(Dynamic(20.0))
        self.assertIn('uniform float phongN%d;' % dynamic.id, dynamic.get_preamble())

    def test_textures(self):
        material = OakFloor('diffuse', 'dirt', 'normal')
        fake = FakeProgram()
        material.update(fake)
        self.assertEqual(fake.textures, {
            'oakFloorDiffuse': (2, 'diffuse'),
            'oakFloorDirt': (3, 'dirt'),
            'oakFloorNormal': (4, 'normal')
        })

    def test_seed_offsets(self):
        # coat samples offset the random argument, not its result
        for material in [OakFloor('a', 'b', 'c'), SoccerBall()]:
            source = material.get_process_statements([])
            self.assertIn('seed*164.32+2.5 - 2.3)', source)
            self.assertNotRegex(source, r'\)\s*- 2\.3')

class TestTraceables(unittest.TestCase):

    def setUp(self):
        ids.reset()

    def test_sphere_hit_test(self):
        sphere = Sphere((0, 0, 5), 1.0, Diffuse())
        self.assertAlmostEqual(sphere.hit_test((0, 0, 0), (0, 0, 1)), 4.0)
        # from the inside only a two-sided sphere is hit
        self.assertEqual(sphere.hit_test((0, 0, 5), (0, 0, 1)), numpy.inf)
        glass = Sphere((0, 0, 5), 1.0, Diffuse(), two_sided=True)
        self.assertAlmostEqual(glass.hit_test((0, 0, 5), (0, 0, 1)), 1.0)
        self.assertEqual(sphere.hit_test((0, 0, 0), (0, 1, 0)), numpy.inf)

    def test_plane_hit_test(self):
        plane = Plane((0, 1, 0), -1.0, Diffuse())
        self.assertAlmostEqual(plane.hit_test((0, 0, 0), (0, -1, 0)), 1.0)
        self.assertEqual(plane.hit_test((0, 0, 0), (0, 1, 0)), numpy.inf)
        self.assertEqual(plane.hit_test((0, 0, 0), (1, 0, 0)), numpy.inf)

    def test_box_hit_test(self):
        box = Box((-1, -1, 4), (1, 1, 6), Diffuse())
        self.assertAlmostEqual(box.hit_test((0.5, 0.5, 0), (0, 0, 1)), 4.0)
        self.assertEqual(box.hit_test((0.5, 0.5, 0), (0, 0, -1)), numpy.inf)
        self.assertEqual(box.hit_test((0.5, 0.5, 5), (0, 0, 1)), numpy.inf)
        two = Box((-1, -1, 4), (1, 1, 6), Diffuse(), two_sided=True)
        self.assertAlmostEqual(two.hit_test((0.5, 0.5, 5), (0, 0, 1)), 1.0)

    def test_prefixes(self):
        a = Sphere((0, 0, 0), 1.0, Diffuse())
        b = Sphere((0, 0, 0), 1.0, Diffuse())
        self.assertNotEqual(a.prefix, b.prefix)
        self.assertEqual(a.hit_name, 'sphere%dhit' % a.id)

    def test_two_sided(self):
        one = Box((0, 0, 0), (1, 1, 1), Diffuse())
        two = Box((0, 0, 0), (1, 1, 1), Diffuse(), two_sided=True)
        self.assertIsNone(one.inside_expression('h'))
        self.assertEqual(two.inside_expression('h'), '(h.x < 0.0)')
        self.assertIn('sign( h.x )', two.normal_expression('h', 'p', 'rp', 'rd'))
        self.assertEqual(one.distance('h'), 'h.x')
        self.assertIn('h.y', two.distance('h'))

    def test_dynamic(self):
        sphere = Sphere((1, 2, 3), 0.5, Diffuse(), dynamic=True)
        self.assertEqual(sphere.uniforms,
            [sphere.prefix + 'center', sphere.prefix + 'radius'])
        fake = FakeProgram()
        sphere.update(fake)
        self.assertEqual(fake.uniforms[sphere.prefix + 'radius'], 0.5)

        plane = Plane((0, 1, 0), 0.0, Diffuse())
        self.assertIn('const vec3 %snormal' % plane.prefix, plane.get_preamble())

    def test_motion_blur(self):
        sphere = Sphere((0, 0, 0), 1.0, Diffuse(), velocity=(1, 0, 0))
        self.assertIn('times', sphere.uniforms)
        self.assertIn(snippets.shutter_times, sphere.required_snippets)
        self.assertIn('mix( times.x, times.y',
            sphere.intersection_expression('rayPos', 'rayDir'))

    def test_distance_field(self):
        field = Snippet('float ball( vec3 p ) { return length( p ) - 1.0; }\n')
        obj = DistanceField('ball', field, Diffuse())
        self.assertEqual(obj.intersection_type(), 'vec2')
        self.assertEqual(obj.inside_expression('h'), '(h.y < 0.0)')
        # flipped to face the ray when marching from the inside
        self.assertIn('( h.y < 0.0 ? -1.0 : 1.0 )',
            obj.normal_expression('h', 'hitPos', 'rayPos', 'rayDir'))
        self.assertEqual(obj.hit_test((0, 0, -5), (0, 0, 1)), numpy.inf)

    def test_nearest_hit(self):
        objs = [FixedDistance(5.0), FixedDistance(2.0), FixedDistance(8.0)]
        hit, t = nearest_hit(objs, (0, 0, 0), (0, 0, 1))
        self.assertIs(hit, objs[1])
        self.assertEqual(t, 2.0)

    def test_nearest_hit_tie(self):
        objs = [FixedDistance(3.0), FixedDistance(3.0)]
        hit, _ = nearest_hit(objs, (0, 0, 0), (0, 0, 1))
        self.assertIs(hit, objs[0])

        self.assertEqual(nearest_hit([FixedDistance(numpy.inf)],
            (0, 0, 0), (0, 0, 1)), (None, numpy.inf))

    def test_missing_material(self):
        self.assertRaises(SceneConfigurationError, Sphere, (0, 0, 0), 1.0, None)

class TestEnvironmentsAndProjections(unittest.TestCase):

    def test_texture_environment(self):
        env = TextureEnvironment('tex', 'cubemap')
        self.assertIn('samplerCube envTexture', env.get_preamble())
        self.assertIn('rotateY( rayDir, TWO_PI * envRotation )',
            env.get_environment_statements())
        self.assertIn(snippets.rotate_y, env.required_snippets)
        self.assertNotIn(snippets.rotate_y,
            TextureEnvironment('tex').required_snippets)
        self.assertRaises(SceneConfigurationError,
            TextureEnvironment, 'tex', 'spherical')

        env = TextureEnvironment('tex', multiplier=2.0, rotation=0.25, half=True)
        self.assertIn('* 2.0 )', env.get_environment_statements())
        fake = FakeProgram()
        env.update(fake)
        self.assertEqual(fake.textures['envTexture'], (1, 'tex'))
        self.assertEqual(fake.uniforms['envRotation'], 0.25)

    def test_projections(self):
        self.assertIn('vec3 rayDir', PerspectiveRays().get_ray_statements())
        self.assertIn('* 45.0;', OrthographicRays(45.0).get_ray_statements())
        self.assertIn('p = pJittered * 5.0;', StereographicRays().get_ray_statements())

        dof = PerspectiveDepthRays(focal_length=10.0)
        fake = FakeProgram()
        dof.update(fake)
        self.assertEqual(fake.uniforms, {'focalLength': 10.0, 'dofSpread': 0.3})

class TestCompiler(unittest.TestCase):

    def setUp(self):
        ids.reset()

    def test_sample_function(self):
        sphere, result = sphere_scene(Absorb())
        source = result.source

        self.assertIn('vec4 sampleXY( vec2 p, float seed ) {', source)
        self.assertIn('uniform mat3 rotationMatrix;', source)
        self.assertIn('const float infty = 60000.0;', source)
        self.assertIn('bounce < 3;', source)
        self.assertTrue(source.index('float pseudorandom(') <
            source.index('vec4 sampleXY('))

    def test_constant_environment_and_absorb(self):
        absorb = Absorb()
        sphere, result = sphere_scene(absorb)
        source = result.source

        # a miss collects E with the initial attenuation and ends the path
        self.assertIn('vec3 attenuation = vec3( 1.0 );', source)
        self.assertIn('vec3 accumulation = vec3( 0.0 );', source)
        self.assertRegex(source,
            r'if \( bounceType == 0 \) \{\s*accumulation = accumulation \+ attenuation \* vec3\(0\.5,0\.6,0\.7\);\s*break;')
        # a hit ends the path before anything is collected
        self.assertIn('bounceType = %d;' % absorb.process_id, source)
        self.assertRegex(source,
            r'bounceType == %d \) \{\s*break;' % absorb.process_id)
        self.assertIn('return vec4( accumulation, 1.0 );', source)

        scene = Scene([sphere], PerspectiveRays(), ConstantEnvironment(0.5))
        self.assertIs(scene.pick((0, 0, 0), (0, 0, 1))[0], sphere)
        self.assertIsNone(scene.pick((0, 0, 0), (0, 1, 0))[0])

    def test_exposure(self):
        _, result = sphere_scene(Absorb(), exposure=0.45)
        self.assertIn('return vec4( accumulation * 0.45, 1.0 );', result.source)

    def test_one_branch_per_process(self):
        unused = Metal((1.0, 1.0))
        unused_id = unused.process_id

        diffuse = Diffuse()
        reflect = Reflect()
        objs = [
            Sphere((0, 0, 5), 1.0, Attenuate(diffuse, 0.5)),
            Sphere((2, 0, 5), 1.0, Attenuate(Diffuse(), 0.7)),
            Plane((0, 1, 0), -1.0, reflect)
        ]
        result = assemble(objs, PerspectiveRays(), ConstantEnvironment(1.0), 2)

        self.assertEqual(result.source.count('bounceType == '), 3)
        self.assertEqual(result.source.count(
            'bounceType == %d ' % diffuse.process_id), 1)
        self.assertNotIn('bounceType == %d ' % unused_id, result.source)
        self.assertEqual([type(m) for m in result.processes], [Diffuse, Reflect])
        self.assertEqual(len(result.materials), 5)

    def test_id_collisions(self):
        reflect = Reflect()
        private = ids.IdAllocator()
        private.next_id('material')
        diffuse = Diffuse(ids=private)
        self.assertNotEqual(diffuse.id, reflect.id)
        self.assertEqual(diffuse.process_id, reflect.process_id)
        objs = [Sphere((0, 0, 5), 1.0, diffuse),
            Sphere((2, 0, 5), 1.0, reflect)]
        self.assertRaises(SceneConfigurationError, assemble, objs,
            PerspectiveRays(), ConstantEnvironment(1.0), 2)

        shared = Attenuate(Diffuse(), 0.5)
        other = Attenuate(Reflect(), 0.7, ids=ids.IdAllocator(first=shared.id))
        self.assertEqual(shared.value_name, other.value_name)
        objs = [Sphere((0, 0, 5), 1.0, shared), Sphere((2, 0, 5), 1.0, other)]
        self.assertRaises(SceneConfigurationError, assemble, objs,
            PerspectiveRays(), ConstantEnvironment(1.0), 2)

        first = Sphere((0, 0, 5), 1.0, Diffuse())
        second = Sphere((2, 0, 5), 1.0, Diffuse(),
            ids=ids.IdAllocator(first=first.id))
        self.assertEqual(first.prefix, second.prefix)
        self.assertRaises(SceneConfigurationError, assemble, [first, second],
            PerspectiveRays(), ConstantEnvironment(1.0), 2)

    def test_composite_completeness(self):
        a = Diffuse()
        b = Attenuate(Transmit(1.0, 1.5), 0.9)
        switch = SwitchedMaterial(a, b, '      ratio = 0.5;\n')
        _, result = sphere_scene(FresnelComposite(Reflect(), switch, 1.0, 1.5))
        source = result.source

        for kind in [Reflect, Diffuse, Transmit]:
            self.assertIn(kind, [type(m) for m in result.processes])
        self.assertEqual(len(result.processes), 3)
        for material in result.processes:
            self.assertIn('bounceType == %d ' % material.process_id, source)

        self.assertEqual(source.count('vec2 transmitIORs;'), 1)
        self.assertIn('const vec3 attenuation%d' % b.id, source)
        self.assertEqual(source.count('vec2 fresnelDielectric('), 1)

    def test_record_materials(self):
        shared = Diffuse()
        objs = [Sphere((0, 0, 0), 1.0, shared), Sphere((0, 0, 0), 1.0, shared)]
        materials, processes = record_materials(objs)
        self.assertEqual(materials, [shared])
        self.assertEqual(processes, [shared])

    def test_cyclic_materials(self):
        a = WrapperMaterial(Diffuse())
        b = WrapperMaterial(a)
        a.required_materials = [b]
        self.assertRaises(SceneConfigurationError,
            record_materials, [Sphere((0, 0, 0), 1.0, b)])

    def test_nearest_hit_order(self):
        objs = [Sphere((0, 0, z), 1.0, Diffuse()) for z in (5, 2, 8)]
        source = assemble(objs, PerspectiveRays(), ConstantEnvironment(1.0),
            1).source

        positions = [source.index('hitObject = %d;' % obj.id) for obj in objs]
        self.assertEqual(positions, sorted(positions))
        for obj in objs:
            hit = obj.hit_name
            self.assertIn('if ( (%s.x > 0.0000001 && %s.x < %s.y) && %s.x < t ) {' \
                % (hit, hit, hit, hit), source)
        self.assertNotIn('<= t', source)

    def test_inside_and_normal(self):
        glass = Sphere((0, 0, 5), 1.0, SmoothDielectric(1.5), two_sided=True)
        floor = Plane((0, 1, 0), -1.0, Diffuse())
        source = assemble([glass, floor], PerspectiveRays(),
            ConstantEnvironment(1.0), 4).source

        self.assertIn('inside = (%s.x < 0.0);' % glass.hit_name, source)
        self.assertEqual(source.count('      inside = '), 1)
        self.assertIn('normal = %snormal;' % floor.prefix, source)

    def test_uniforms(self):
        moving = [Sphere((0, 0, i), 0.5, Diffuse(), velocity=(1, 0, 0))
            for i in range(2)]
        glow = Emit(Diffuse(), Dynamic((1, 1, 1)))
        objs = moving + [Sphere((1, 1, 1), 1.0, glow, dynamic=True)]
        env = TextureEnvironment('tex')
        result = assemble(objs, PerspectiveDepthRays(), env, 2)

        self.assertEqual(result.uniforms[:2], ['rotationMatrix', 'cameraPosition'])
        self.assertEqual(len(result.uniforms), len(set(result.uniforms)))
        for name in ['envTexture', 'envRotation', 'focalLength', 'dofSpread',
            'times', 'emission%d' % glow.id, objs[2].prefix + 'center']:
            self.assertIn(name, result.uniforms)
        self.assertEqual(result.source.count('uniform vec2 times;'), 1)

    def test_shared_snippets_once(self):
        field = Snippet('float ball( vec3 p ) { return length( p ) - 1.0; }\n')
        objs = [
            DistanceField('ball', field, Diffuse()),
            Sphere((0, 0, 5), 1.0, PhongSpecular(30.0)),
            Box((0, 0, 0), (1, 1, 1), Diffuse())
        ]
        source = assemble(objs, PerspectiveRays(), ConstantEnvironment(1.0),
            2).source

        self.assertEqual(source.count('vec3 rayT('), 1)
        self.assertEqual(source.count('float ball('), 1)
        self.assertEqual(source.count('#define TWO_PI'), 1)
        self.assertEqual(source.count('vec3 sampleTowardsNormal3('), 1)

    def test_shared_declarations(self):
        floors = [Plane((0, 1, 0), -1.0, OakFloor('a', 'b', 'c')),
            Plane((0, 1, 0), -2.0, OakFloor('a', 'b', 'c'))]
        result = assemble(floors, PerspectiveRays(), ConstantEnvironment(1.0), 2)
        self.assertEqual(result.source.count('uniform sampler2D oakFloorDiffuse;'), 1)
        self.assertEqual(result.uniforms.count('oakFloorDiffuse'), 1)

    def test_configuration_errors(self):
        class NotAMaterial:
            pass

        env = ConstantEnvironment(1.0)
        proj = PerspectiveRays()
        sphere = Sphere((0, 0, 0), 1.0, Diffuse())

        self.assertRaises(SceneConfigurationError, assemble,
            [Sphere((0, 0, 0), 1.0, NotAMaterial())], proj, env, 2)
        self.assertRaises(SceneConfigurationError, assemble,
            [sphere], proj, object(), 2)
        self.assertRaises(SceneConfigurationError, assemble,
            [sphere], object(), env, 2)
        self.assertRaises(SceneConfigurationError, assemble,
            [object()], proj, env, 2)
        self.assertRaises(SceneConfigurationError, assemble,
            [sphere], proj, env, 0)

    def test_deterministic(self):
        objs = [Sphere((0, 0, 5), 1.0, FresnelComposite(Reflect(), Diffuse(), 1.0, 1.5))]
        env = ConstantEnvironment(1.0)
        a = assemble(objs, PerspectiveRays(), env, 3).source
        b = assemble(objs, PerspectiveRays(), env, 3).source
        self.assertEqual(a, b)

class TestScene(unittest.TestCase):

    def setUp(self):
        ids.reset()

    def test_camera(self):
        self.assertTrue(numpy.allclose(camera_rotmat((0, 0, 1)), numpy.eye(3)))
        forward = numpy.dot(camera_rotmat((1, 0, 0)), (0, 0, 1))
        self.assertTrue(numpy.allclose(forward, (1, 0, 0)))
        self.assertRaises(ValueError, camera_rotmat, (0, 1, 0))

    def test_objects(self):
        scene = DefaultScene()
        make_room(scene)
        self.assertEqual(scene.get_object('floor').name, 'floor')
        self.assertRaises(KeyError, scene.get_object, 'nothing')
        scene.delete_objects('light')
        self.assertRaises(KeyError, scene.get_object, 'light')

    def test_three_spheres(self):
        scene = make_three_spheres(DefaultScene(), [Diffuse(), Reflect(), Absorb(), Diffuse()])
        self.assertEqual(len(scene.objects), 3)
        self.assertIsInstance(scene.get_object('sphere 1').material, Reflect)

    def test_pick(self):
        scene = DefaultScene()
        front = scene.add_object(Sphere((0, 0, 5), 1.0, Diffuse()), 'front')
        scene.add_object(Sphere((0, 0, 10), 3.0, Diffuse()), 'back')
        self.assertIs(scene.pick_pixel(0, 0)[0], front)

        scene.camera_position = (0, 0, 20)
        scene.direct_camera_towards((0, 0, 0))
        self.assertEqual(scene.pick_pixel(0, 0)[0].name, 'back')

    def test_update(self):
        glow = Emit(Diffuse(), Dynamic((1.0, 2.0, 3.0)))
        scene = DefaultScene([Sphere((0, 0, 5), 1.0, glow)])
        scene.camera_position = (1.0, 2.0, 3.0)
        scene.shutter_times = (0.0, 0.5)

        fake = FakeProgram()
        scene.update(fake)
        self.assertTrue(numpy.allclose(fake.uniforms['rotationMatrix'], numpy.eye(3)))
        self.assertEqual(fake.uniforms['cameraPosition'], (1.0, 2.0, 3.0))
        self.assertEqual(fake.uniforms['times'], (0.0, 0.5))
        self.assertEqual(fake.uniforms['emission%d' % glow.id], (1.0, 2.0, 3.0))

    def test_default_scene_program(self):
        scene = DefaultScene()
        make_room(scene)
        result = scene.make_program()
        self.assertIn('#define INV_SQRT_3', result.source)
        self.assertEqual(result.source.count('bounce < 5;'), 1)

class FakeUniform:
    value = None

class FakeGLProgram:

    def __init__(self, names):
        self.members = dict((name, FakeUniform()) for name in names)

    def get(self, name, default):
        return self.members.get(name, default)

class FakeContext:

    def __init__(self, error=None, names=()):
        self.error = error
        self.names = names

    def program(self, vertex_shader, fragment_shader):
        if self.error is not None:
            raise moderngl.Error(self.error)
        return FakeGLProgram(self.names)

class FakeTexture:
    location = None

    def use(self, location=0):
        self.location = location

class TestProgram(unittest.TestCase):

    def setUp(self):
        ids.reset()

    def test_integrator(self):
        source = program.integrator_fragment_source('// SAMPLE CODE\n', num_samples=3)
        for uniform in program.INTEGRATOR_UNIFORMS:
            self.assertIn(' %s;' % uniform, source)
        self.assertIn('// SAMPLE CODE', source)
        self.assertIn('i < 3;', source)
        self.assertIn('sampleSum / 3.0, previous, weight', source)
        self.assertIn('sampleXY( texCoord, time + float( i ) )', source)
        self.assertTrue(source.index('uniform float size;') <
            source.index('// SAMPLE CODE'))

        self.assertIn('gl_Position', program.VERTEX_SOURCE)

    def test_tonemap(self):
        gamma = program.tonemap_fragment_source()
        self.assertIn('uniform sampler2D image;', gamma)
        self.assertIn('vec3( 1.0 / 2.2 )', gamma)
        self.assertNotIn('/ ( 1.0 + fragColor.rgb )', gamma)

        reinhard = program.tonemap_fragment_source('reinhard')
        self.assertTrue(reinhard.index('/ ( 1.0 + fragColor.rgb )') <
            reinhard.index('vec3( 1.0 / 2.2 )'))

        filmic = program.tonemap_fragment_source('filmic')
        self.assertIn('pow( abs( brightness ), 2.2 )', filmic)
        self.assertNotIn('vec3( 1.0 / 2.2 )', filmic)
        self.assertNotIn('###', filmic)

        self.assertRaises(SceneConfigurationError,
            program.tonemap_fragment_source, 'aces')

        shader = program.build_tonemap_program(FakeContext(names=['brightness']))
        shader.set_uniform('brightness', 1.5)
        self.assertEqual(shader.program.members['brightness'].value, 1.5)
        self.assertEqual(shader.uniform_names, program.TONEMAP_UNIFORMS)

    def test_accumulation_weight(self):
        self.assertEqual(program.accumulation_weight(0), 0.0)
        self.assertEqual(program.accumulation_weight(3), 0.75)

    def test_compile_error(self):
        with self.assertRaises(ShaderCompileError) as cm:
            program.ShaderProgram(FakeContext(error='0:12: syntax error'),
                'vertex', 'broken fragment', [])
        self.assertIn('0:12: syntax error', cm.exception.log)
        self.assertEqual(cm.exception.source, 'broken fragment')

    def test_binding(self):
        ctx = FakeContext(names=['rotationMatrix', 'cameraPosition', 'envTexture'])
        shader = program.ShaderProgram(ctx, 'vertex', 'fragment',
            ['rotationMatrix', 'cameraPosition'])

        shader.set_uniform('rotationMatrix', [[1, 2, 3], [4, 5, 6], [7, 8, 9]])
        self.assertEqual(shader.program.members['rotationMatrix'].value,
            (1.0, 4.0, 7.0, 2.0, 5.0, 8.0, 3.0, 6.0, 9.0))
        shader.set_uniform('cameraPosition', (1, 2, 3))
        self.assertEqual(shader.program.members['cameraPosition'].value,
            (1.0, 2.0, 3.0))
        # optimized out uniforms are ignored
        shader.set_uniform('times', (0, 1))

        texture = FakeTexture()
        shader.bind_texture('envTexture', 1, texture)
        self.assertEqual(texture.location, 1)
        self.assertEqual(shader.program.members['envTexture'].value, 1)

    def test_build_program(self):
        _, result = sphere_scene(Diffuse())
        dump = os.path.join(tempfile.mkdtemp(), 'last_code.glsl')
        shader = program.build_program(FakeContext(), result,
            num_samples=2, dump_file=dump)

        with open(dump) as f:
            self.assertEqual(f.read(), shader.fragment_source)
        self.assertIn(result.source, shader.fragment_source)
        self.assertEqual(shader.uniform_names[:4], program.INTEGRATOR_UNIFORMS)
        self.assertIn('rotationMatrix', shader.uniform_names)

if __name__ == '__main__':
    unittest.main()
