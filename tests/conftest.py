# tests/conftest.py
"""
Pytest Fixtures - reusable test components.
"""

import io
import sys
import textwrap
from pathlib import Path

import pytest

# Add parent dir to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))


# ═══════════════════════════════════════════════════════════
# LLM REPLY FIXTURES
# ═══════════════════════════════════════════════════════════

@pytest.fixture
def valid_json_simple():
    return '{"namespace": "ns-a1", "resource": "pods"}'


@pytest.fixture
def json_in_markdown():
    """JSON array inside a ```json fence."""
    return '''Here is the cleaned input:

```json
[
    {"namespace": "ns-mh69tey1", "resource": "devbox", "identifier": "hzh"},
    {"namespace": "ns-mh69tey1", "resource": "cluster", "identifier": "hzh"}
]
```

Done.'''


@pytest.fixture
def broken_json_trailing_comma():
    return '[{"namespace": "ns-a1", "resource": "pods", "identifier": "hzh",},]'


@pytest.fixture
def json_with_text():
    return '''Sure, the result is:

[{"namespace": "ns-a1", "resource": "pods", "identifier": "bja"}]

Let me know if you need more.'''


# ═══════════════════════════════════════════════════════════
# SYNTHETIC WORKERS
# ═══════════════════════════════════════════════════════════

@pytest.fixture
def worker_command(tmp_path):
    """
    Writes a small Python worker script and returns the argv to run it.

    Usage: worker_command('print("hi")')
    """
    def _make(source: str, name: str = "worker.py"):
        script = tmp_path / name
        script.write_text(textwrap.dedent(source))
        return [sys.executable, str(script)]
    return _make


# ═══════════════════════════════════════════════════════════
# OUTPUT CAPTURE
# ═══════════════════════════════════════════════════════════

@pytest.fixture
def captured_output():
    """OutputLayer writing into a buffer; read it back with .console.file.getvalue()."""
    from rich.console import Console
    from core.layers.output import OutputLayer

    console = Console(file=io.StringIO(), width=160, force_terminal=False, color_system=None)
    return OutputLayer(console=console)
