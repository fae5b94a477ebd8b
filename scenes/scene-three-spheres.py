from glray.default_scenes import DefaultScene, make_three_spheres
from glray.traceables import Plane
from glray.materials import Attenuate, Diffuse, Reflect, SmoothDielectric, PhongSpecular
from glray.projections import PerspectiveDepthRays

scene = DefaultScene()
scene.add_object(Plane((0, 1, 0), -1.0, Attenuate(Diffuse(), 0.7)), 'floor')
make_three_spheres(scene, [
    Attenuate(Diffuse(), (0.8, 0.3, 0.3)),
    SmoothDielectric(1.5),
    Attenuate(PhongSpecular(100.0), (0.9, 0.9, 0.6))
])

scene.projection = PerspectiveDepthRays(focal_length=4.0, dof_spread=0.05)
scene.exposure = 0.45
scene.camera_position = (0.0, 0.0, 0.0)
scene.direct_camera_towards((0.0, -0.5, 4.0))
