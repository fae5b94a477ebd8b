
import jinja2

environment = None

def get_environment():
    global environment
    if environment is None:
        environment = jinja2.Environment(\
            loader=jinja2.PackageLoader('glray', 'glsl_templates'), \
            line_statement_prefix='###',
            trim_blocks=True,
            keep_trailing_newline=True)
    return environment

def render(template_name, *args, **kwargs):
    return get_environment().get_template(template_name).render(*args, **kwargs)
