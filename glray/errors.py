
class SceneConfigurationError(RuntimeError):
    """A component or scene was put together incorrectly"""
    pass

class CyclicSnippetError(RuntimeError):
    """A snippet (transitively) depends on itself"""
    
    def __init__(self, path):
        self.path = path
        RuntimeError.__init__(self,
            "cyclic snippet dependency: " + " -> ".join(
                ["#%d" % s.id for s in path]))

class ShaderCompileError(RuntimeError):
    """
    The GL compiler rejected the generated code. Both the compiler output
    and the offending source are kept for debugging.
    """
    
    def __init__(self, log, source):
        self.log = log
        self.source = source
        RuntimeError.__init__(self, "GLSL compile error: %s" % log)
