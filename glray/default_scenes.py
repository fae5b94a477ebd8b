from glray.scene import Scene
from glray.traceables import Plane, Box, Sphere
from glray.materials import Diffuse, Attenuate, Emit
from glray.projections import PerspectiveRays
from glray.environments import ProceduralEnvironment
from glray import snippets

# bright sun in the direction (1, 1, 1) over a blue sky gradient,
# a dim ground below the horizon
SKY_STATEMENTS = """\
      if ( rayDir.y < 0.0 ) {
        accumulation = accumulation + attenuation * vec3( 0.25, 0.22, 0.2 ) * ( 1.0 + rayDir.y );
      } else {
        float sun = pow( max( 0.0, dot( rayDir, vec3( INV_SQRT_3 ) ) ), 300.0 );
        accumulation = accumulation + attenuation * ( mix( vec3( 0.8, 0.9, 1.0 ), vec3( 0.3, 0.5, 0.9 ), rayDir.y ) + vec3( 60.0, 55.0, 45.0 ) * sun );
      }
"""

_inv_sqrt_3 = snippets.Snippet('#define INV_SQRT_3 0.57735026918962576450914878050196\n')

def sky_environment():
    return ProceduralEnvironment(SKY_STATEMENTS, [_inv_sqrt_3])

class DefaultScene(Scene):
    """Perspective camera at the origin looking along +z under a sky"""

    def __init__(self, objects=None):
        Scene.__init__(self, objects,
            projection=PerspectiveRays(),
            environment=sky_environment(),
            bounces=5)

def make_room(scene, size=10.0, height=6.0, light_color=(6.0, 5.5, 5.0)):
    """
    Adds a floor, walls around the camera (open towards the sky) and a
    ceiling light to the scene
    """
    white = Attenuate(Diffuse(), 0.8)
    red = Attenuate(Diffuse(), (0.7, 0.4, 0.4))
    green = Attenuate(Diffuse(), (0.4, 0.9, 0.4))
    light = Emit(Attenuate(Diffuse(), 0.5), light_color)

    half = size / 2.0
    scene.add_object(Plane((0, 1, 0), -1.0, white), 'floor')
    scene.add_object(Plane((1, 0, 0), -half, red), 'left wall')
    scene.add_object(Plane((-1, 0, 0), -half, green), 'right wall')
    scene.add_object(Plane((0, 0, -1), -size, white), 'back wall')
    scene.add_object(Box((-1.0, height - 1.1, size*0.4), (1.0, height - 1.0, size*0.6), light), 'light')
    return scene

def make_three_spheres(scene, materials):
    """Three spheres of radius 0.5 in a row resting on the y = -1 plane"""
    for i, material in enumerate(materials[:3]):
        scene.add_object(Sphere((1.2*(i - 1), -0.5, 4.0), 0.5, material),
            'sphere %d' % i)
    return scene
