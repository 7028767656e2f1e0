"""
Renders the ``karate-config.js`` bootstrap script from the environment registry.
"""

from pathlib import Path
from typing import Iterable, Optional

from jinja2 import Environment, BaseLoader

from ..core.exceptions import FileOperationError
from .models import TestEnvironment

KARATE_CONFIG_TEMPLATE = """function fn() {
  var env = karate.env || {{ default_env | tojson }};
  karate.log('karate.env:', env);

  var config = {
    baseUrl: 'http://localhost:8080',
    timeoutMs: 5000,
    headers: { 'Content-Type': 'application/json' }
  };
{% for env in environments %}
  if (env === {{ env.id | tojson }}) {
    config.baseUrl = {{ env.base_url | tojson }};
    config.timeoutMs = {{ env.timeout_ms }};
    config.retryCount = {{ env.retry_count }};
{%- if env.headers %}
    config.headers = {{ env.headers | tojson }};
{%- endif %}
{%- for key, value in env.variables | dictsort %}
    config[{{ key | tojson }}] = {{ value | tojson }};
{%- endfor %}
  }
{% endfor %}
  karate.configure('connectTimeout', config.timeoutMs);
  karate.configure('readTimeout', config.timeoutMs);
  karate.configure('headers', config.headers);

  return config;
}
"""

_jinja_env = Environment(loader=BaseLoader(), autoescape=False, keep_trailing_newline=True)


def render_karate_config(
    environments: Iterable[TestEnvironment], current_id: Optional[str] = None
) -> str:
    """Render the bootstrap script, defaulting to ``current_id`` (or dev)."""
    template = _jinja_env.from_string(KARATE_CONFIG_TEMPLATE)
    ordered = sorted(environments, key=lambda env: env.id)
    return template.render(environments=ordered, default_env=current_id or "dev")


def write_karate_config(
    path: Path,
    environments: Iterable[TestEnvironment],
    current_id: Optional[str] = None,
) -> Path:
    """Write the rendered script to ``path`` and return it."""
    path = Path(path)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(render_karate_config(environments, current_id), encoding="utf-8")
    except OSError as e:
        raise FileOperationError(
            f"Failed to write karate config: {e}",
            file_path=str(path),
            operation="write",
        )
    return path
