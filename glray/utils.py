import numpy as np

# GLSL literals used all over the generated code
EPSILON = '0.0001'
SMALL_EPSILON = '0.0000001'
AIR_IOR = 1.0002771

def normalize(vecs):
    lens = np.sum(vecs**2, len(vecs.shape)-1)
    lens = np.sqrt(lens)
    lens = np.array(lens)
    lens.shape += (1, )
    lens[lens > 0] = 1.0 / lens[lens > 0]
    return vecs * lens

def normalize_tuple(vec):
    return tuple(float(x) for x in normalize(np.array(tuple(vec), dtype=float)))

def vec_norm(vec):
    return np.sqrt(sum([x**2 for x in vec]))

def to_float(value):
    """GLSL float literal. Strings are assumed to be GLSL expressions"""
    if isinstance(value, str):
        return value
    return repr(float(value))

def _vec_literal(vec, n):
    values = np.ravel(np.array(vec, dtype=float))
    if values.size == 1:
        values = np.repeat(values, n)
    if values.size != n:
        raise ValueError("expected %d components, got %s" % (n, vec))
    return 'vec%d(%s)' % (n, ','.join([to_float(x) for x in values]))

def to_vec2(vec):
    if isinstance(vec, str):
        return vec
    return _vec_literal(vec, 2)

def to_vec3(vec):
    if isinstance(vec, str):
        return vec
    return _vec_literal(vec, 3)

def vec_equals(vec, other, n=3):
    a = np.ravel(np.array(vec, dtype=float))
    if a.size == 1:
        a = np.repeat(a, n)
    return a.size == n and bool(np.all(a == np.array(other, dtype=float)))

class Dynamic:
    """
    Wraps a material parameter that is bound as a uniform, so that it can
    be changed between frames without regenerating the program.
    """

    def __init__(self, value):
        self.value = value

# value kinds, see value_kind
CONSTANT = 'constant'
DYNAMIC = 'dynamic'
CUSTOM = 'custom'

def value_kind(value):
    if isinstance(value, Dynamic):
        return DYNAMIC
    if callable(value):
        return CUSTOM
    return CONSTANT

class SourceBuilder:
    """Append-only list of source fragments, joined once at the end"""

    def __init__(self):
        self._parts = []

    def append(self, *parts):
        self._parts.extend(parts)
        return self

    def __str__(self):
        return ''.join(self._parts)

def unique(items, key=id):
    """Drop repeated items, keeping the first occurrence"""
    seen = set()
    result = []
    for item in items:
        k = key(item)
        if k in seen: continue
        seen.add(k)
        result.append(item)
    return result
