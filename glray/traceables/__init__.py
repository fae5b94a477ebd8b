"""Hit-testable objects"""

from glray.traceables.plane import Plane
from glray.traceables.box import Box
from glray.traceables.sphere import Sphere
from glray.traceables.distance_field import DistanceField
