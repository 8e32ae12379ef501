"""Load settings.yaml into typed dataclasses. Reports which backends have API keys."""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml

from spec_debate.models import AgentSpec, ConfigError, DebateConfig, Persona, SynthesisAgent

logger = logging.getLogger(__name__)

_SETTINGS_PATH = Path(__file__).parent / "settings.yaml"


@dataclass
class BackendConfig:
    name: str
    sdk: str                   # "anthropic", "openai", "gemini", "openai_compatible"
    model: str
    api_key_env: str
    timeout_sec: int
    max_tokens: int
    temperature: float | None = None
    base_url: str | None = None


@dataclass
class DefaultsConfig:
    max_rounds: int
    consensus_threshold: float
    synthesis_enabled: bool
    agent_timeout_sec: float | None
    store_dir: str = ".spec-debate"


@dataclass
class AppConfig:
    defaults: DefaultsConfig
    backends: dict[str, BackendConfig]
    agents: list[AgentSpec] = field(default_factory=list)
    synthesis_agent: SynthesisAgent | None = None
    available_backends: set[str] = field(default_factory=set)


def parse_agent(raw: dict) -> AgentSpec:
    """Build an AgentSpec from a {backend, persona, model?} mapping."""
    try:
        persona = Persona(raw["persona"])
    except ValueError as exc:
        raise ConfigError(f"Unknown persona: {raw['persona']!r}") from exc
    except KeyError as exc:
        raise ConfigError(f"Agent entry missing {exc}") from exc
    if "backend" not in raw:
        raise ConfigError("Agent entry missing 'backend'")
    model = raw.get("model")
    return AgentSpec(backend=str(raw["backend"]), persona=persona, model=str(model) if model else None)


def load_config(settings_path: Path = _SETTINGS_PATH) -> AppConfig:
    """Load and validate configuration from settings.yaml.

    Raises FileNotFoundError if the settings file is missing and ConfigError
    for invalid agent entries. Missing API keys are logged, not raised;
    callers check available_backends.
    """
    if not settings_path.exists():
        raise FileNotFoundError(f"Settings file not found: {settings_path}")

    with settings_path.open("r", encoding="utf-8") as f:
        raw = yaml.safe_load(f)

    defaults_raw = raw["defaults"]
    timeout_raw = defaults_raw.get("agent_timeout_sec")
    defaults = DefaultsConfig(
        max_rounds=int(defaults_raw["max_rounds"]),
        consensus_threshold=float(defaults_raw["consensus_threshold"]),
        synthesis_enabled=bool(defaults_raw.get("synthesis_enabled", True)),
        agent_timeout_sec=float(timeout_raw) if timeout_raw is not None else None,
        store_dir=str(defaults_raw.get("store_dir", ".spec-debate")),
    )

    agents = [parse_agent(a) for a in raw.get("agents", [])]

    synthesis_raw = raw.get("synthesis_agent")
    synthesis_agent = None
    if synthesis_raw:
        synthesis_agent = SynthesisAgent(
            backend=str(synthesis_raw["backend"]),
            model=synthesis_raw.get("model"),
        )

    backends: dict[str, BackendConfig] = {}
    available_backends: set[str] = set()

    for backend_name, backend_raw in raw["backends"].items():
        temperature = backend_raw.get("temperature")
        backend_cfg = BackendConfig(
            name=backend_name,
            sdk=backend_raw["sdk"],
            model=backend_raw["model"],
            api_key_env=backend_raw["api_key_env"],
            timeout_sec=int(backend_raw["timeout_sec"]),
            max_tokens=int(backend_raw["max_tokens"]),
            temperature=float(temperature) if temperature is not None else None,
            base_url=backend_raw.get("base_url"),
        )
        backends[backend_name] = backend_cfg

        api_key = os.environ.get(backend_raw["api_key_env"], "").strip()
        if api_key:
            available_backends.add(backend_name)
            logger.info("Backend available: %s", backend_name)
        else:
            logger.info(
                "Backend skipped (no API key): %s, set %s in .env",
                backend_name,
                backend_raw["api_key_env"],
            )

    return AppConfig(
        defaults=defaults,
        backends=backends,
        agents=agents,
        synthesis_agent=synthesis_agent,
        available_backends=available_backends,
    )


def build_debate_config(
    config: AppConfig,
    *,
    agents: list[AgentSpec] | None = None,
    max_rounds: int | None = None,
    consensus_threshold: float | None = None,
    synthesis_enabled: bool | None = None,
) -> DebateConfig:
    """Merge overrides onto settings defaults and validate the result."""
    debate_config = DebateConfig(
        agents=list(agents if agents is not None else config.agents),
        max_rounds=max_rounds if max_rounds is not None else config.defaults.max_rounds,
        consensus_threshold=(
            consensus_threshold if consensus_threshold is not None
            else config.defaults.consensus_threshold
        ),
        synthesis_enabled=(
            synthesis_enabled if synthesis_enabled is not None
            else config.defaults.synthesis_enabled
        ),
        synthesis_agent=config.synthesis_agent,
        agent_timeout_sec=config.defaults.agent_timeout_sec,
    )
    debate_config.validate()
    return debate_config
