"""
Generates the GLSL sample function of a scene.

The sample function vec4 sampleXY( vec2 p, float seed ) traces one path
through the scene for the image position p and returns the collected
radiance. Its source starts with every snippet needed by the scene
components, in dependency order.
"""

import collections
from glray import snippets, templates
from glray.snippets import Snippet
from glray.errors import SceneConfigurationError
from glray.utils import AIR_IOR, to_float, unique

SAMPLE_FUNCTION = 'sampleXY'

# uniforms bound by the scene itself
CAMERA_UNIFORMS = ['rotationMatrix', 'cameraPosition']

# distance that means "no hit"
INFTY = '60000.0'

SceneProgram = collections.namedtuple('SceneProgram',
    ['source', 'uniforms', 'snippets', 'materials', 'processes'])

CAPABILITIES = {
    'material': [
        'id', 'uniforms', 'required_snippets', 'required_materials',
        'process_id', 'get_preamble', 'get_locals', 'get_hit_statements',
        'get_process_statements', 'update'],
    'traceable': [
        'id', 'prefix', 'material', 'uniforms', 'required_snippets',
        'get_preamble', 'intersection_type', 'intersection_expression',
        'valid_intersection', 'distance', 'inside_expression',
        'normal_expression', 'update'],
    'environment': [
        'uniforms', 'required_snippets', 'get_preamble',
        'get_environment_statements', 'update'],
    'projection': [
        'uniforms', 'required_snippets', 'get_preamble',
        'get_ray_statements', 'update']
}

def check_capabilities(component, role):
    missing = [name for name in CAPABILITIES[role] \
        if not hasattr(component, name)]
    if missing:
        raise SceneConfigurationError("%s %r is missing %s" % \
            (role, component, ', '.join(missing)))

def record_materials(traceables):
    """
    Walks the materials of the traceables and everything they require.
    Returns (materials, processes): the distinct material instances and
    one instance per distinct process id, both in order of first
    occurrence.
    """
    materials = []
    processes = []
    seen = set()
    material_ids = {}
    process_types = {}
    active = []

    def record(material):
        check_capabilities(material, 'material')
        if any(m is material for m in active):
            raise SceneConfigurationError("cyclic material composition: %s" % \
                ' -> '.join([type(m).__name__ for m in active + [material]]))
        if id(material) in seen:
            return
        seen.add(id(material))
        if material.id in material_ids:
            raise SceneConfigurationError(
                "materials %r and %r share the id %d" % \
                (material_ids[material.id], material, material.id))
        material_ids[material.id] = material
        materials.append(material)

        process_id = material.process_id
        if process_id is not None:
            if process_id not in process_types:
                process_types[process_id] = type(material)
                processes.append(material)
            elif process_types[process_id] is not type(material):
                raise SceneConfigurationError(
                    "%s and %s share the process id %d" % \
                    (process_types[process_id].__name__,
                     type(material).__name__, process_id))

        active.append(material)
        for sub_material in material.required_materials:
            record(sub_material)
        active.pop()

    for traceable in traceables:
        record(traceable.material)

    return materials, processes

def _text(code):
    # the template puts each block on its own lines
    return code.rstrip('\n')

def assemble(traceables, projection, environment, bounces, exposure=1.0):

    traceables = list(traceables)
    traceable_ids = {}
    prefixes = set()
    for traceable in traceables:
        check_capabilities(traceable, 'traceable')
        if traceable.id in traceable_ids or traceable.prefix in prefixes:
            raise SceneConfigurationError(
                "traceable %r collides with %r (id %d, prefix %s)" % \
                (traceable, traceable_ids.get(traceable.id), traceable.id,
                 traceable.prefix))
        traceable_ids[traceable.id] = traceable
        prefixes.add(traceable.prefix)
    check_capabilities(environment, 'environment')
    check_capabilities(projection, 'projection')

    if isinstance(bounces, bool) or not isinstance(bounces, int) or bounces < 1:
        raise SceneConfigurationError(
            "bounces must be a positive integer, got %r" % (bounces,))

    materials, processes = record_materials(traceables)

    # one set of locals per material kind
    material_kinds = unique(materials, key=type)

    preambles = [environment.get_preamble()] + \
        [obj.get_preamble() for obj in traceables] + \
        [material.get_preamble() for material in materials] + \
        [projection.get_preamble()]

    locals_ = [material.get_locals() for material in material_kinds]

    objects = []
    for obj in traceables:
        hit = obj.prefix + 'hit'
        objects.append({
            'id': obj.id,
            'hit': hit,
            'type': obj.intersection_type(),
            'expression': obj.intersection_expression('rayPos', 'rayDir'),
            'valid': obj.valid_intersection(hit),
            'distance': obj.distance(hit),
            'inside': obj.inside_expression(hit),
            'normal': obj.normal_expression(hit, 'hitPos', 'rayPos', 'rayDir'),
            'hit_statements': _text(obj.material.get_hit_statements(
                'hitPos', 'normal', 'rayPos', 'rayDir'))
        })

    process_entries = [{
            'id': material.process_id,
            'statements': _text(material.get_process_statements(traceables))
        } for material in processes]

    if exposure == 1.0:
        exposure = None
    else:
        exposure = to_float(exposure)

    kernel = templates.render('sample.glsl',
        name=SAMPLE_FUNCTION,
        infty=INFTY,
        air_ior=to_float(AIR_IOR),
        preambles=[_text(p) for p in preambles if p],
        ray_statements=_text(projection.get_ray_statements()),
        locals=[_text(l) for l in locals_ if l],
        bounces=bounces,
        objects=objects,
        environment=_text(environment.get_environment_statements()),
        processes=process_entries,
        exposure=exposure)

    required = list(environment.required_snippets) + \
        list(projection.required_snippets)
    for obj in traceables:
        required.extend(obj.required_snippets)
    for material in materials:
        required.extend(material.required_snippets)
    required = snippets.unique_snippets(
        [snippets.ray_t, snippets.pseudorandom] + required)

    source = snippets.flatten(Snippet(kernel, required))

    uniforms = list(CAMERA_UNIFORMS) + list(environment.uniforms) + \
        list(projection.uniforms)
    for obj in traceables:
        uniforms.extend(obj.uniforms)
    for material in materials:
        uniforms.extend(material.uniforms)
    uniforms = unique(uniforms, key=lambda name: name)

    return SceneProgram(source, uniforms, required, materials, processes)

class Compiler:

    def __init__(self, scene):
        self.scene = scene

    def make_program(self):
        scene = self.scene
        return assemble(scene.objects,
            scene.projection,
            scene.environment,
            scene.bounces,
            exposure=scene.exposure)
