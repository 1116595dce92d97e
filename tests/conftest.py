import aws_cdk as cdk
import pytest
from aws_cdk.assertions import Template

from stacks.config import NovellaSettings
from stacks.novella_stack import NovellaStack


@pytest.fixture(scope="session")
def build_context(tmp_path_factory):
    """Throwaway docker build context so synth never touches the repo root."""
    path = tmp_path_factory.mktemp("app")
    (path / "Dockerfile").write_text("FROM public.ecr.aws/docker/library/node:20-alpine\nEXPOSE 80\n")
    return path


@pytest.fixture(scope="session")
def make_stack(build_context):
    def _make(**overrides):
        overrides.setdefault("app_build_context", str(build_context))
        settings = NovellaSettings(**overrides)
        app = cdk.App()
        stack = NovellaStack(app, "NovellaStack", settings=settings)
        return stack, Template.from_stack(stack)
    return _make


@pytest.fixture(scope="session")
def synthesized(make_stack):
    return make_stack()


@pytest.fixture(scope="session")
def stack(synthesized):
    return synthesized[0]


@pytest.fixture(scope="session")
def template(synthesized):
    return synthesized[1]


@pytest.fixture(scope="session")
def template_json(template):
    return template.to_json()


@pytest.fixture(scope="session")
def logical_id(stack):
    def _id(construct):
        return stack.get_logical_id(construct.node.default_child)
    return _id
