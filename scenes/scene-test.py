"""
Test scene: should contain all different objects and materials
"""

from glray.default_scenes import DefaultScene, make_room
from glray.traceables import Sphere, Box, DistanceField
from glray.materials import *
from glray.utils import Dynamic
from glray import snippets

torus = snippets.Snippet("""\
float torusField( vec3 p ) {
  return sdTorus( p - vec3( 2.0, 0.0, 6.0 ), vec2( 0.6, 0.2 ) );
}
""", [snippets.sd_torus])

glass = SmoothDielectric(1.5)
gold = Metal((0.47, 2.83))
test_materials = [
    Attenuate(Diffuse(), (0.9, 0.6, 0.3)),
    Reflect(),
    glass,
    Attenuate(Transmit(1.0, 1.3), 0.9),
    PhongSpecular(40.0),
    ShinyBlack(1.5),
    gold,
    FresnelComposite(Reflect(), Attenuate(Diffuse(), 0.3), 1.0, 1.5),
    SwitchedMaterial(Diffuse(), Reflect(), '      ratio = 0.3;\n'),
    Emit(Absorb(), Dynamic((1.0, 0.8, 0.6))),
    SoccerBall()
]

scene = DefaultScene()
make_room(scene)

for i, material in enumerate(test_materials):
    x = (i % 4 - 1.5) * 1.4
    z = 4.0 + (i // 4) * 1.5
    scene.add_object(Sphere((x, -0.6, z), 0.4, material, two_sided=(material is glass)))

scene.add_object(Box((-0.3, -1.0, 2.5), (0.3, -0.4, 3.1), Attenuate(Diffuse(), 0.7)), 'box')
scene.add_object(DistanceField('torusField', torus, gold), 'torus')
scene.add_object(Sphere((-2.5, 1.0, 7.0), 0.5, Attenuate(Diffuse(), 0.8),
    velocity=(0.5, 0.0, 0.0)), 'moving')

scene.bounces = 6
scene.camera_position = (0.0, 1.0, -1.0)
scene.direct_camera_towards((0.0, -0.5, 5.0))
