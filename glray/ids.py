
class IdAllocator:
    """
    Hands out increasing integer ids, separately for each kind of thing
    (snippets, materials, traceables and material process types).
    """
    
    def __init__(self, first=1):
        self.first = first
        self.reset()
    
    def reset(self):
        self._counters = {}
        self._type_ids = {}
    
    def next_id(self, kind):
        value = self._counters.get(kind, self.first)
        self._counters[kind] = value + 1
        return value
    
    def type_id(self, kind, cls):
        """The same id for every instance of cls"""
        key = (kind, cls)
        if key not in self._type_ids:
            self._type_ids[key] = self.next_id(kind)
        return self._type_ids[key]

default = IdAllocator()

def reset():
    default.reset()

def allocator(ids=None):
    if ids is None:
        return default
    return ids
