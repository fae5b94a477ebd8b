"""
Command line entry point.

To use, an instance of the Scene class should be defined as the module
level variable scene in a scene file (e.g. scenes/scene-test.py), which
is given to this program as a command line argument. The generated sample
function (or, with -f, the whole integrator fragment shader) is written
to OUTPUT_FILE.
"""

import time, sys, os, os.path, argparse

from glray import program
from glray.compiler import Compiler
from glray.errors import ShaderCompileError

def parse_args(argv=None):
    arg_parser = argparse.ArgumentParser(prog='glray')
    arg_parser.add_argument('-o', '--output', default='out.glsl')
    arg_parser.add_argument('-b', '--bounces', type=int)
    arg_parser.add_argument('-s', '--samples_per_pass', type=int, default=5)
    arg_parser.add_argument('-f', '--fragment_shader', action='store_true',
        help='write the full integrator fragment shader')
    arg_parser.add_argument('-c', '--compile', action='store_true',
        help='compile the result in a standalone GL context')
    arg_parser.add_argument('-t', '--tonemap', default='gamma',
        choices=program.TONEMAP_KINDS,
        help='display shader compiled along with -c')
    arg_parser.add_argument('scene')
    return arg_parser.parse_args(argv)

def import_scene(path):
    # (not pretty...)
    sys.path.append(os.path.dirname(os.path.abspath(path)))
    scene_name = os.path.basename(path).split('.')[0]
    scene_module = __import__(scene_name)
    return scene_module.scene

def main(argv=None):
    startup_time = time.time()
    args = parse_args(argv)

    scene = import_scene(args.scene)
    if args.bounces is not None:
        scene.bounces = args.bounces

    scene_program = Compiler(scene).make_program()

    source = scene_program.source
    if args.fragment_shader:
        source = program.integrator_fragment_source(source,
            num_samples=args.samples_per_pass)

    with open(args.output, 'w') as f:
        f.write(source)

    print('%d objects, %d materials, %d material kinds' % \
        (len(scene.objects), len(scene_program.materials),
         len(scene_program.processes)))
    print('%d snippets, %d characters of GLSL written to %s' % \
        (len(scene_program.snippets), len(source), args.output))
    print('uniforms: %s' % ', '.join(scene_program.uniforms))

    if args.compile:
        import moderngl
        ctx = moderngl.create_standalone_context()
        try:
            program.build_program(ctx, scene_program,
                num_samples=args.samples_per_pass,
                dump_file='last_code.glsl')
            program.build_tonemap_program(ctx, args.tonemap)
        except ShaderCompileError as e:
            print(e.log)
            print('the failing source is in last_code.glsl')
            sys.exit(1)
        print('compiled OK')

    print('done in %.2f s' % (time.time() - startup_time))

if __name__ == '__main__':
    main()
