import pytest
from pathlib import Path
import sys

# Add project root to path
sys.path.append(str(Path(__file__).parent.parent))

from emitpipe.config import PipelineConfig
from emitpipe.pipeline import PipelineServices, SourceLocation, Unit


def fake_transform(unit, context, sink):
    """Stand-in transformer: markers in the source drive diagnostics."""
    if "@error" in unit.source:
        sink.error("unsupported syntax", SourceLocation(1, 1))
    if "@warn" in unit.source:
        sink.warning("deprecated syntax")
    return ("module", unit.key, unit.source.strip())


def fake_render(ir):
    """Stand-in renderer: pure function of the IR."""
    _, key, body = ir
    return f"-- compiled from {key}\n{body}\n"


def make_units(*sources):
    """Units keyed src/unit_<i>.ts in the order given."""
    return [Unit(key=f"src/unit_{i}.ts", source=source) for i, source in enumerate(sources)]


@pytest.fixture
def out_dir(tmp_path):
    """Return path to the output directory for a test run."""
    return tmp_path / "out"


@pytest.fixture
def resolve_output_path(out_dir):
    """Map src/name.ts to out/name.lua."""
    return lambda unit: out_dir / (Path(unit.key).stem + ".lua")


@pytest.fixture
def services(resolve_output_path):
    """Pipeline services wired to the stand-in collaborators."""
    return PipelineServices(
        transformer=fake_transform,
        renderer=fake_render,
        resolve_output_path=resolve_output_path,
    )


@pytest.fixture
def config():
    """Default config with write-only-if-changed enabled."""
    return PipelineConfig(write_only_if_changed=True)
