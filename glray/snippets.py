"""
GLSL snippets: pieces of shader code with dependencies on other snippets.

A program is produced by flattening a root snippet, which emits every
snippet it (transitively) needs exactly once, dependencies first:

    a = Snippet('A')
    b = Snippet('B', [a])
    c = Snippet('C', [a])
    d = Snippet('D', [b, c])

    str(d) == 'ABCD'
    str(b) == 'AB'
"""

from glray import ids as id_module
from glray.errors import CyclicSnippetError
from glray.utils import SourceBuilder, EPSILON, SMALL_EPSILON, to_float, unique

class Snippet:

    def __init__(self, source, dependencies=None, ids=None):
        self.id = id_module.allocator(ids).next_id('snippet')
        self.source = source
        self.dependencies = tuple(dependencies or ())

    def flatten(self):
        return flatten(self)

    def __str__(self):
        return flatten(self)

    def __repr__(self):
        return '<Snippet #%d: %r>' % (self.id, self.source[:30])

def flatten(root):
    """
    The source of root and all its dependencies, each snippet exactly once
    and always after everything it depends on.
    """
    out = SourceBuilder()
    _flatten(root, set(), [], set(), out)
    return str(out)

def _flatten(snippet, used, path, active, out):
    # the visited set is keyed on identity: equal sources are still
    # different snippets
    if id(snippet) in used:
        # our dependencies were included when we were
        return

    if id(snippet) in active:
        start = [id(s) for s in path].index(id(snippet))
        raise CyclicSnippetError(path[start:] + [snippet])

    path.append(snippet)
    active.add(id(snippet))

    for dependency in snippet.dependencies:
        _flatten(dependency, used, path, active, out)

    out.append(snippet.source)

    active.discard(id(snippet))
    path.pop()
    used.add(id(snippet))

def unique_snippets(snippets):
    return unique(snippets)

# ------------- constants

def _constant(name, digits):
    return Snippet('#define %s %s\n' % (name, digits[:33]))

PI = _constant('PI', '3.1415926535897932384626433832795028841971693993751058')
TWO_PI = _constant('TWO_PI', '6.2831853071795864769252867665590057683943387987502116')
HALF_PI = _constant('HALF_PI', '1.5707963267948966192313216916397514420985846996875529')
PHI = _constant('PHI', '1.618033988749894848204586834365638117720309179805763')
INV_PHI = _constant('INV_PHI', '0.6180339887498948482045868343656381177203091798057629')
SQRT_2 = _constant('SQRT_2', '1.414213562373095048801688724209698078569671875376948')
SQRT_5 = _constant('SQRT_5', '2.236067977499789696409173668731276235440618359611526')
# 1 / (2 sqrt(2))
INV_2_SQRT_2 = _constant('INV_2_SQRT_2', '0.3535533905932737622004221810524245196424179688442370')

# ------------- randomness

rand = Snippet("""\
highp float rand(vec2 co) {
    highp float a = 12.9898;
    highp float b = 78.233;
    highp float c = 43758.5453;
    highp float dt= dot(co.xy ,vec2(a,b));
    highp float sn= mod(dt,3.1415926);
    return fract(sin(sn) * c);
}
""")

pseudorandom = Snippet("""\
float pseudorandom(float u) {
  return rand(gl_FragCoord.xy * mod(u * 4.5453,3.1415926));
}
""", [rand])

# start and end of the exposure, for motion blur
shutter_times = Snippet('uniform vec2 times;\n')

# ------------- rays and intersections

ray_t = Snippet("""\
vec3 rayT( vec3 rayPos, vec3 rayDir, float t ) {
  return rayPos + t * rayDir;
}
""")

# plane "normal . p = d", returns the ray t of the intersection
ray_intersect_plane3 = Snippet("""\
float rayIntersectPlane3( vec3 normal, float d, vec3 rayPos, vec3 rayDir ) {
  return ( d - dot( normal, rayPos ) ) / dot( normal, rayDir );
}
""")

# slab method. returns vec2( tNear, tFar ), no intersection if tNear >= tFar
ray_intersect_aabb3 = Snippet("""\
vec2 rayIntersectAABB3( vec3 boxMinCorner, vec3 boxMaxCorner, vec3 rayPos, vec3 rayDir ) {
  vec3 tBack = ( boxMinCorner - rayPos ) / rayDir;
  vec3 tFront = ( boxMaxCorner - rayPos ) / rayDir;
  vec3 tMin = min( tBack, tFront );
  vec3 tMax = max( tBack, tFront );
  float tNear = max( max( tMin.x, tMin.y ), tMin.z );
  float tFar = min( min( tMax.x, tMax.y ), tMax.z );
  return vec2( tNear, tFar );
}
""")

# boxCenter = (maxCorner + minCorner)/2, boxHalfSize = (maxCorner - minCorner)/2
normal_on_aabb3 = Snippet("""\
vec3 normalOnAABB3( vec3 boxCenter, vec3 boxHalfSize, vec3 point ) {
  vec3 delta = ( point - boxCenter ) / boxHalfSize;
  vec3 ab = abs( delta );
  if ( ab.x > ab.y ) {
    if ( ab.x > ab.z ) {
      return vec3( sign( delta.x ), 0, 0 );
    }
  } else {
    if ( ab.y > ab.z ) {
      return vec3( 0, sign( delta.y ), 0 );
    }
  }
  return vec3( 0, 0, sign( delta.z ) );
}
""")

# NOTE: close to edges and corners this blends the normals of the faces
normal_fast_on_aabb3 = Snippet("""\
vec3 normalFastOnAABB3( vec3 boxCenter, vec3 boxHalfSize, vec3 point ) {
  vec3 unitDelta = ( point - boxCenter ) / boxHalfSize;
  return normalize( step( 1.0 - %(eps)s, unitDelta ) - step( 1.0 - %(eps)s, -1.0 * unitDelta ) );
}
""" % { 'eps': EPSILON })

# returns vec2( tNear, tFar ), no intersection unless tNear < tFar
ray_intersect_sphere = Snippet("""\
vec2 rayIntersectSphere( vec3 center, float radius, vec3 rayPos, vec3 rayDir ) {
  vec3 toSphere = rayPos - center;
  float a = dot( rayDir, rayDir );
  float b = 2.0 * dot( toSphere, rayDir );
  float c = dot( toSphere, toSphere ) - radius * radius;
  float discriminant = b * b - 4.0 * a * c;
  if( discriminant > %s ) {
    float sqt = sqrt( discriminant );
    return ( vec2( -sqt, sqt ) - b ) / ( 2.0 * a );
  } else {
    return vec2( 1.0, -1.0 );
  }
}
""" % SMALL_EPSILON)

normal_on_sphere = Snippet("""\
vec3 normalOnSphere( vec3 center, float radius, vec3 point ) {
  return ( point - center ) / radius;
}
""")

# ------------- sampling

box_muller = Snippet("""\
vec2 boxMuller( float xi1, float xi2 ) {
  float angle = TWO_PI * xi2;
  return vec2( cos( angle ), sin( angle ) ) * sqrt( -2.0 * log( xi1 ) );
}
""", [TWO_PI])

uniform_inside_disk = Snippet("""\
vec2 uniformInsideDisk( float xi1, float xi2 ) {
  float angle = TWO_PI * xi1;
  float mag = sqrt( xi2 );
  return vec2( mag * cos( angle ), mag * sin( angle ) );
}
""", [TWO_PI])

# sample_uniform_on_hemisphere relies on the order of xi1, xi2 here
sample_uniform_on_sphere = Snippet("""\
vec3 sampleUniformOnSphere( float xi1, float xi2 ) {
  float angle = TWO_PI * xi1;
  float mag = 2.0 * sqrt( xi2 * ( 1.0 - xi2 ) );
  return vec3( mag * cos( angle ), mag * sin( angle ), 1.0 - 2.0 * xi2 );
}
""", [TWO_PI])

# z >= 0
sample_uniform_on_hemisphere = Snippet("""\
vec3 sampleUniformOnHemisphere( float xi1, float xi2 ) {
  return sampleUniformOnSphere( xi1, xi2 / 2.0 );
}
""", [sample_uniform_on_sphere])

# weighted by dot( dir, (0,0,1) )
sample_dot_weight_on_hemisphere = Snippet("""\
vec3 sampleDotWeightOnHemiphere( float xi1, float xi2 ) {
  float angle = TWO_PI * xi1;
  float mag = sqrt( xi2 );
  return vec3( mag * cos( angle ), mag * sin( angle ), sqrt( 1.0 - xi2 ) );
}
""", [TWO_PI])

# weighted by dot( dir, (0,0,1) )^n
sample_power_dot_weight_on_hemisphere = Snippet("""\
vec3 samplePowerDotWeightOnHemiphere( float n, float xi1, float xi2 ) {
  float angle = TWO_PI * xi1;
  float z = pow( abs( xi2 ), 1.0 / ( n + 1.0 ) );
  float mag = sqrt( 1.0 - z * z );
  return vec3( mag * cos( angle ), mag * sin( angle ), z );
}
""", [TWO_PI])

construct_basis3 = Snippet("""\
mat3 constructBasis3( vec3 normal ) {
  vec3 a, b;
  if ( abs( normal.x ) < 0.5 ) {
    a = normalize( cross( normal, vec3( 1, 0, 0 ) ) );
  } else {
    a = normalize( cross( normal, vec3( 0, 1, 0 ) ) );
  }
  b = normalize( cross( normal, a ) );
  return mat3( a, b, normal );
}
""")

sample_basis3 = Snippet("""\
vec3 sampleBasis3( mat3 basis, vec3 sampleDir ) {
  return basis[0] * sampleDir.x + basis[1] * sampleDir.y + basis[2] * sampleDir.z;
}
""")

# rotates a sample around (0,0,1) to be around normal
sample_towards_normal3 = Snippet("""\
vec3 sampleTowardsNormal3( vec3 normal, vec3 sampleDir ) {
  vec3 a, b;
  if ( abs( normal.x ) < 0.5 ) {
    a = normalize( cross( normal, vec3( 1, 0, 0 ) ) );
  } else {
    a = normalize( cross( normal, vec3( 0, 1, 0 ) ) );
  }
  b = normalize( cross( normal, a ) );
  return a * sampleDir.x + b * sampleDir.y + normal * sampleDir.z;
}
""")

# rotation around the y axis, decreasing atan( v.z, v.x ) by angle
rotate_y = Snippet("""\
vec3 rotateY( vec3 v, float angle ) {
  float c = cos( angle );
  float s = sin( angle );
  return vec3( c * v.x + s * v.z, v.y, c * v.z - s * v.x );
}
""")

# ------------- four dimensions

# plane "normal . p = d" in 4D, returns the ray t of the intersection
ray_intersect_plane4 = Snippet("""\
float rayIntersectPlane4( vec4 normal, float d, vec4 rayPos, vec4 rayDir ) {
  return ( d - dot( normal, rayPos ) ) / dot( normal, rayDir );
}
""")

# slab method. returns vec2( tNear, tFar ), no intersection if tNear >= tFar
ray_intersect_aabb4 = Snippet("""\
vec2 rayIntersectAABB4( vec4 boxMinCorner, vec4 boxMaxCorner, vec4 rayPos, vec4 rayDir ) {
  vec4 tBack = ( boxMinCorner - rayPos ) / rayDir;
  vec4 tFront = ( boxMaxCorner - rayPos ) / rayDir;
  vec4 tMin = min( tBack, tFront );
  vec4 tMax = max( tBack, tFront );
  float tNear = max( max( max( tMin.x, tMin.y ), tMin.z ), tMin.w );
  float tFar = min( min( min( tMax.x, tMax.y ), tMax.z ), tMax.w );
  return vec2( tNear, tFar );
}
""")

normal_on_aabb4 = Snippet("""\
vec4 normalOnAABB4( vec4 boxCenter, vec4 boxHalfSize, vec4 point ) {
  vec4 delta = ( point - boxCenter ) / boxHalfSize;
  vec4 ab = abs( delta );
  if ( ab.x > ab.y ) {
    if ( ab.x > ab.z ) {
      if ( ab.x > ab.w ) {
        return vec4( sign( delta.x ), 0, 0, 0 );
      }
    } else {
      if ( ab.z > ab.w ) {
        return vec4( 0, 0, sign( delta.z ), 0 );
      }
    }
  } else {
    if ( ab.y > ab.z ) {
      if ( ab.y > ab.w ) {
        return vec4( 0, sign( delta.y ), 0, 0 );
      }
    } else {
      if ( ab.z > ab.w ) {
        return vec4( 0, 0, sign( delta.z ), 0 );
      }
    }
  }
  return vec4( 0, 0, 0, sign( delta.w ) );
}
""")

# NOTE: close to edges and corners this blends the normals of the faces
normal_fast_on_aabb4 = Snippet("""\
vec4 normalFastOnAABB4( vec4 boxCenter, vec4 boxHalfSize, vec4 point ) {
  vec4 unitDelta = ( point - boxCenter ) / boxHalfSize;
  return normalize( step( 1.0 - %(eps)s, unitDelta ) - step( 1.0 - %(eps)s, -1.0 * unitDelta ) );
}
""" % { 'eps': EPSILON })

# returns vec2( tNear, tFar ), no intersection unless tNear < tFar
ray_intersect_3sphere = Snippet("""\
vec2 rayIntersect3Sphere( vec4 center, float radius, vec4 rayPos, vec4 rayDir ) {
  vec4 toSphere = rayPos - center;
  float a = dot( rayDir, rayDir );
  float b = 2.0 * dot( toSphere, rayDir );
  float c = dot( toSphere, toSphere ) - radius * radius;
  float discriminant = b * b - 4.0 * a * c;
  if( discriminant > %s ) {
    float sqt = sqrt( discriminant );
    return ( vec2( -sqt, sqt ) - b ) / ( 2.0 * a );
  } else {
    return vec2( 1.0, -1.0 );
  }
}
""" % SMALL_EPSILON)

normal_on_3sphere = Snippet("""\
vec4 normalOn3Sphere( vec4 center, float radius, vec4 point ) {
  return ( point - center ) / radius;
}
""")

sample_uniform_on_3sphere = Snippet("""\
vec4 sampleUniformOn3Sphere( float xi1, float xi2, float xi3, float xi4 ) {
  return normalize( vec4( boxMuller( xi1, xi2 ), boxMuller( xi3, xi4 ) ) );
}
""", [box_muller])

# w >= 0
sample_uniform_on_3hemisphere = Snippet("""\
vec4 sampleUniformOn3Hemisphere( float xi1, float xi2, float xi3, float xi4 ) {
  vec2 boxy = boxMuller( xi3, xi4 );
  return normalize( vec4( boxMuller( xi1, xi2 ), boxy.x, abs( boxy.y ) ) );
}
""", [box_muller])

# weighted by dot( dir, (0,0,0,1) )
sample_dot_weight_on_3hemisphere = Snippet("""\
vec4 sampleDotWeightOn3Hemiphere( float xi1, float xi2, float xi3 ) {
  float tr = pow( abs( xi1 ), 1.0 / 3.0 );
  float mag = tr * sqrt( xi2 * ( 1.0 - xi2 ) );
  float angle = TWO_PI * xi3;
  return vec4( mag * cos( angle ), mag * sin( angle ), tr * ( 1.0 - 2.0 * xi2 ), sqrt( 1.0 - tr * tr ) );
}
""", [TWO_PI])

# constructBasis4Ordered assumes n.y and n.w are not zero, constructBasis4
# permutes the axes so that two significant components land there
construct_basis4 = Snippet("""\
mat4 constructBasis4Ordered( vec4 n ) {
  float n14 = n.x / n.w;
  float n32 = n.z / n.y;
  vec4 x = vec4( 1, 0, 0, -n14 ) * inversesqrt( n14 * n14 + 1.0 );
  vec4 y = vec4( 0, -n32, 1, 0 ) * inversesqrt( n32 * n32 + 1.0 );
  vec4 z = vec4( n.y * x.w / y.z, n.w * y.z / x.x, -n.w * y.y / x.x, -n.y * x.x / y.z );
  return mat4( x, y, z, n );
}
mat4 constructBasis4( vec4 normal ) {
  bvec4 sig = greaterThan( abs( normal ), vec4( %s ) );
  mat4 basis;
  if ( sig.x ) {
    if ( sig.y ) {
      basis = constructBasis4Ordered( normal.wyzx );
      return mat4( basis[0].wyzx, basis[1].wyzx, basis[2].wyzx, basis[3].wyzx );
    } else if ( sig.z ) {
      basis = constructBasis4Ordered( normal.yxwz );
      return mat4( basis[0].yxwz, basis[1].yxwz, basis[2].yxwz, basis[3].yxwz );
    } else if ( sig.w ) {
      basis = constructBasis4Ordered( normal.yxzw );
      return mat4( basis[0].yxzw, basis[1].yxzw, basis[2].yxzw, basis[3].yxzw );
    } else {
      return mat4( vec4( 0, 1, 0, 0 ), vec4( 0, 0, 1, 0 ), vec4( 0, 0, 0, 1 ), normal );
    }
  } else if ( sig.y ) {
    if ( sig.z ) {
      basis = constructBasis4Ordered( normal.xywz );
      return mat4( basis[0].xywz, basis[1].xywz, basis[2].xywz, basis[3].xywz );
    } else if ( sig.w ) {
      return constructBasis4Ordered( normal );
    } else {
      return mat4( vec4( 1, 0, 0, 0 ), vec4( 0, 0, 1, 0 ), vec4( 0, 0, 0, 1 ), normal );
    }
  } else if ( sig.z ) {
    if ( sig.w ) {
      basis = constructBasis4Ordered( normal.xzyw );
      return mat4( basis[0].xzyw, basis[1].xzyw, basis[2].xzyw, basis[3].xzyw );
    } else {
      return mat4( vec4( 1, 0, 0, 0 ), vec4( 0, 1, 0, 0 ), vec4( 0, 0, 0, 1 ), normal );
    }
  } else if ( sig.w ) {
    return mat4( vec4( 1, 0, 0, 0 ), vec4( 0, 1, 0, 0 ), vec4( 0, 0, 1, 0 ), normal );
  }
  // no significant component, should not happen for a unit normal
  return constructBasis4Ordered( normal );
}
""" % SMALL_EPSILON)

sample_basis4 = Snippet("""\
vec4 sampleBasis4( mat4 basis, vec4 sampleDir ) {
  return basis[0] * sampleDir.x + basis[1] * sampleDir.y + basis[2] * sampleDir.z + basis[3] * sampleDir.w;
}
""", [construct_basis4])

# ------------- optics

# total internal reflection if abs( dot( normal, incident ) ) < cutoff
total_internal_reflection_cutoff = Snippet("""\
float totalInternalReflectionCutoff( float na, float nb ) {
  if ( na <= nb ) {
    return 0.0;
  }
  float ratio = nb / na;
  return sqrt( 1.0 - ratio * ratio );
}
""")

# dielectric reflectance going from IOR na to nb, needs the transmitted
# direction. returns vec2( sReflect, pReflect )
fresnel_dielectric = Snippet("""\
vec2 fresnelDielectric( vec3 incident, vec3 normal, vec3 transmitted, float na, float nb ) {
  float doti = abs( dot( incident, normal ) );
  float dott = abs( dot( transmitted, normal ) );
  vec2 result = vec2( ( na * doti - nb * dott ) / ( na * doti + nb * dott ), ( na * dott - nb * doti ) / ( na * dott + nb * doti ) );
  return result * result;
}
""")

# reflectance of a conductor with complex index nb + i k, from IOR na.
# returns vec2( sReflect, pReflect )
fresnel = Snippet("""\
vec2 fresnel( vec3 incident, vec3 normal, float na, float nb, float k ) {
  float doti = abs( dot( incident, normal ) );
  float comm = na * na * ( doti * doti - 1.0 ) / ( ( nb * nb + k * k ) * ( nb * nb + k * k ) );
  float resq = 1.0 + comm * ( nb * nb - k * k );
  float imsq = 2.0 * comm * nb * k;
  float temdott = sqrt( resq * resq + imsq * imsq );
  float redott = ( sqrt( 2.0 ) / 2.0 ) * sqrt( temdott + resq );
  float imdott = ( imsq >= 0.0 ? 1.0 : -1.0 ) * ( sqrt( 2.0 ) / 2.0 ) * sqrt( temdott - resq );
  float renpdott = nb * redott + k * imdott;
  float imnpdott = nb * imdott - k * redott;
  float retop = na * doti - renpdott;
  float rebot = na * doti + renpdott;
  float retdet = rebot * rebot + imnpdott * imnpdott;
  float reret = ( retop * rebot + -imnpdott * imnpdott ) / retdet;
  float imret = ( -imnpdott * rebot - retop * imnpdott ) / retdet;
  float sReflect = reret * reret + imret * imret;
  retop = ( nb * nb - k * k ) * doti - na * renpdott;
  rebot = ( nb * nb - k * k ) * doti + na * renpdott;
  float imtop = -2.0 * nb * k * doti - na * imnpdott;
  float imbot = -2.0 * nb * k * doti + na * imnpdott;
  retdet = rebot * rebot + imbot * imbot;
  reret = ( retop * rebot + imtop * imbot ) / retdet;
  imret = ( imtop * rebot - retop * imbot ) / retdet;
  float pReflect = reret * reret + imret * imret;
  return vec2( sReflect, pReflect );
}
""")

# assumes total internal reflection has already been ruled out
sample_fresnel_dielectric = Snippet("""\
vec3 sampleFresnelDielectric( vec3 incident, vec3 normal, float na, float nb, float xi1 ) {
  vec3 transmitDir = refract( incident, normal, na / nb );
  vec2 reflectance = fresnelDielectric( incident, normal, transmitDir, na, nb );
  if ( xi1 > ( reflectance.x + reflectance.y ) / 2.0 ) {
    return transmitDir;
  } else {
    return reflect( incident, normal );
  }
}
""", [fresnel_dielectric])

# wavelength in nm => IOR
#   BK7: 1.03961212, 0.231792344, 1.01046945, 0.00600069867, 0.0200179144, 103.560653
#   fused silica: 0.6961663, 0.4079426, 0.8974794, 0.00467914826, 0.0135120631, 97.9340025
sellmeier_dispersion = Snippet("""\
float sellmeierDispersion( float bx, float by, float bz, float cx, float cy, float cz, float wavelength ) {
  float lams = wavelength * wavelength / 1000000.0;
  return sqrt( 1.0 + ( bx * lams ) / ( lams - cx ) + ( by * lams ) / ( lams - cy ) + ( bz * lams ) / ( lams - cz ) );
}
""")

# ------------- polyhedra

closest_icosahedron_point = Snippet("""\
vec3 closestIcosahedronPoint( vec3 n ) {
  vec3 v1 = vec3( 0.0, n.y > 0.0 ? 1.0 : -1.0, n.z > 0.0 ? PHI : -PHI );
  vec3 v2 = vec3( n.x > 0.0 ? 1.0 : -1.0, n.y > 0.0 ? PHI : -PHI, 0.0 );
  vec3 v3 = vec3( n.x > 0.0 ? PHI : -PHI, 0.0, n.z > 0.0 ? 1.0 : -1.0 );
  float d1 = dot( n, v1 );
  float d2 = dot( n, v2 );
  float d3 = dot( n, v3 );
  return d1 > d2 ? ( d1 > d3 ? v1 : v3 ) : ( d2 > d3 ? v2 : v3 );
}
""", [PHI])

closest_dodecahedron_point = Snippet("""\
vec3 closestDodecahedronPoint( vec3 n ) {
  vec3 v1 = vec3( 0.0, n.y > 0.0 ? PHI : -PHI, n.z > 0.0 ? INV_PHI : -INV_PHI );
  vec3 v2 = vec3( n.x > 0.0 ? PHI : -PHI, n.y > 0.0 ? INV_PHI : -INV_PHI, 0.0 );
  vec3 v3 = vec3( n.x > 0.0 ? INV_PHI : -INV_PHI, 0.0, n.z > 0.0 ? PHI : -PHI );
  vec3 v4 = vec3( n.x > 0.0 ? 1.0 : -1.0, n.y > 0.0 ? 1.0 : -1.0, n.z > 0.0 ? 1.0 : -1.0 );
  float d1 = dot( n, v1 );
  float d2 = dot( n, v2 );
  float d3 = dot( n, v3 );
  float d4 = dot( n, v4 );
  return d1 > d2 ? ( d1 > d3 ? ( d1 > d4 ? v1 : v4 ) : ( d3 > d4 ? v3 : v4 ) ) : ( d2 > d3 ? ( d2 > d4 ? v2 : v4 ) : ( d3 > d4 ? v3 : v4 ) );
}
""", [PHI, INV_PHI])

# ------------- distance fields
# see http://www.iquilezles.org/www/articles/distfunctions/distfunctions.htm

sd_sphere = Snippet("""\
float sdSphere( vec3 p, float s ) {
  return length( p ) - s;
}
""")

ud_box = Snippet("""\
float udBox( vec3 p, vec3 b ) {
  return length( max( abs( p ) - b, 0.0 ) );
}
""")

sd_box = Snippet("""\
float sdBox( vec3 p, vec3 b ) {
  vec3 d = abs( p ) - b;
  return min( max( d.x, max( d.y, d.z ) ), 0.0 ) + length( max( d, 0.0 ) );
}
""")

ud_round_box = Snippet("""\
float udRoundBox( vec3 p, vec3 b, float r ) {
  return length( max( abs( p ) - b, 0.0 ) ) - r;
}
""")

sd_torus = Snippet("""\
float sdTorus( vec3 p, vec2 t ) {
  vec2 q = vec2( length( p.xz ) - t.x, p.y );
  return length( q ) - t.y;
}
""")

sd_cylinder = Snippet("""\
float sdCylinder( vec3 p, vec3 c ) {
  return length( p.xz - c.xy ) - c.z;
}
""")

# along the y axis, c is the normalized normal of the cone in (xz, y)
sd_cone = Snippet("""\
float sdCone( vec3 p, vec2 c ) {
  float q = length( p.xz );
  return dot( c, vec2( q, p.y ) );
}
""")

# n normalized
sd_plane = Snippet("""\
float sdPlane( vec3 p, vec3 n, float d ) {
  return dot( p, n ) + d;
}
""")

sd_hex_prism = Snippet("""\
float sdHexPrism( vec3 p, vec2 h ) {
  vec3 q = abs( p );
  return max( q.z - h.y, max( q.x + q.y * 0.57735, q.y * 1.1547 ) - h.x );
}
""")

sd_tri_prism = Snippet("""\
float sdTriPrism( vec3 p, vec2 h ) {
  vec3 q = abs( p );
  return max( q.z - h.y, max( q.x * 0.866025 + p.y * 0.5, -p.y ) - h.x * 0.5 );
}
""")

sd_capsule = Snippet("""\
float sdCapsule( vec3 p, vec3 a, vec3 b, float r ) {
  vec3 pa = p - a, ba = b - a;
  float h = clamp( dot( pa, ba ) / dot( ba, ba ), 0.0, 1.0 );
  return length( pa - ba * h ) - r;
}
""")

sd_capped_cylinder = Snippet("""\
float sdCappedCylinder( vec3 p, vec2 h ) {
  vec2 d = abs( vec2( length( p.xz ), p.y ) ) - h;
  return min( max( d.x, d.y ), 0.0 ) + length( max( d, 0.0 ) );
}
""")

d_union = Snippet("""\
float dUnion( float d1, float d2 ) {
  return min( d1, d2 );
}
""")

d_difference = Snippet("""\
float dDifference( float d1, float d2 ) {
  return max( d1, -d2 );
}
""")

d_intersection = Snippet("""\
float dIntersection( float d1, float d2 ) {
  return max( d1, d2 );
}
""")

smin_exp = Snippet("""\
float sMinExp( float a, float b, float k ) {
  float res = exp( -k*a ) + exp( -k*b );
  return -log( res )/k;
}
""")

smax_exp = Snippet("""\
float sMaxExp( float a, float b, float k ) {
  float res = exp( k*a ) + exp( k*b );
  return log( res )/k;
}
""")

def make_distance_field_marcher(name, field_name, steps=65, step_ratio=1.0,
    end_threshold=0.1, required_snippets=(), ids=None):
    """
    Sphere tracing of the field with a fixed number of steps. The generated
    function returns vec2( t, d ) where t is -1 if the march did not
    converge and d is the field value just before the hit (negative when
    the ray started inside).
    """

    return Snippet("""\
vec2 %(name)s( vec3 rayPos, vec3 rayDir ) {
  float t = 0.0;
  float dt = 0.0;
  for( int tests = 0; tests < %(steps)d; tests++ ) {
    vec3 p = rayT( rayPos, rayDir, t );
    float dist = abs( %(field)s( p ) );
    dt = dist * %(ratio)s;
    t = t + dt;
  }
  return vec2( dt > %(threshold)s ? -1.0 : t, %(field)s( rayT( rayPos, rayDir, t - 0.001 ) ) );
}
""" % {
        'name': name,
        'field': field_name,
        'steps': steps,
        'ratio': to_float(step_ratio),
        'threshold': to_float(end_threshold)
    }, [ray_t] + list(required_snippets), ids=ids)

def make_distance_field_normal(name, field_name, offset_distance=0.001,
    gradient_distance=0.0001, required_snippets=(), ids=None):
    """Normalized central difference gradient of the field"""

    g = to_float(gradient_distance)

    def diff(offset):
        return '%s( testPoint + vec3( %s ) ) - %s( testPoint - vec3( %s ) )' \
            % (field_name, offset, field_name, offset)

    components = [
        diff('%s, 0.0, 0.0' % g),
        diff('0.0, %s, 0.0' % g),
        diff('0.0, 0.0, %s' % g)
    ]

    return Snippet("""\
vec3 %s( vec3 rayPos, vec3 rayDir, vec3 hitPos ) {
  vec3 testPoint = hitPos - rayDir * %s;
  return normalize( vec3(
    %s ) );
}
""" % (name, to_float(offset_distance), ',\n    '.join(components)),
        list(required_snippets), ids=ids)
