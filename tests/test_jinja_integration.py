"""Rendering builders through Jinja2 templates."""

import jinja2
from pydantic import BaseModel

from formbuilder.core import Option, new
from formbuilder.integrations.jinja import install


class UserForm(BaseModel):
    name: str = ""
    role: str = ""


def make_env(**templates) -> jinja2.Environment:
    env = jinja2.Environment(loader=jinja2.DictLoader(templates), autoescape=True)
    return install(env)


class TestInstall:
    def test_registers_globals(self):
        env = make_env()
        assert env.globals["form_builder"] is new
        assert env.globals["FormOption"] is Option

    def test_builder_created_in_template(self):
        env = make_env(page='{% set form = form_builder(action="/search", method="GET") %}'
                            '{{ form.open() }}{{ form.search("q") }}{{ form.close() }}')
        html = env.get_template("page").render()
        assert html == (
            '<form action="/search" method="GET">'
            '<input type="search" name="q" value="" class="form-control">'
            "</form>"
        )


class TestAutoescape:
    def test_fragments_are_not_escaped_twice(self):
        env = make_env(page="{{ form.text('name') }}{{ form.field_error('name') }}")
        form = new(model=UserForm(name="A & B"), errors={"name": "Too <short>"})
        html = env.get_template("page").render(form=form)
        assert '<input type="text" name="name" value="A &amp; B" class="form-control is-invalid">' in html
        assert '<div class="invalid-feedback">Too &lt;short&gt;</div>' in html

    def test_select_with_template_options(self):
        env = make_env(page="{{ form.select('role', [FormOption('1', 'Admin'), FormOption('2', 'User')]) }}")
        form = new(old_input={"role": ["2"]})
        html = env.get_template("page").render(form=form)
        assert '<option value="2" selected>User</option>' in html
        assert '<option value="1">Admin</option>' in html

    def test_keyword_attributes_from_template(self):
        env = make_env(page="{{ form.text('name', placeholder='Your name', class_='wide') }}")
        html = env.get_template("page").render(form=new())
        assert 'class="form-control wide"' in html
        assert 'placeholder="Your name"' in html
