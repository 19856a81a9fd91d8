"""Configuration management for urlsentry."""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Set

import yaml
from dotenv import load_dotenv

from .analyzer.similarity import (
    CANDIDATE_THRESHOLD,
    DEFAULT_CORPUS_PATH,
    HIGH_THRESHOLD,
    REPORT_THRESHOLD,
)
from .constants import DEFAULT_BRANDS, DEFAULT_SHORTENERS
from .utils.domains import COMPOUND_TLDS, KNOWN_DOMAINS, canonicalize_host

logger = logging.getLogger(__name__)

# Number of reputation services a single lookup may consult.
REPUTATION_SERVICES = 3


@dataclass
class Config:
    """Application configuration loaded from environment."""

    # Paths
    config_dir: Path = field(default_factory=lambda: Path("./config"))

    # Logging
    log_level: str = "INFO"

    # Reputation lookups
    reputation_enabled: bool = True
    reputation_timeout: float = 5.0
    reputation_retries: int = 1
    reputation_cache_minutes: int = 15
    phishtank_api_key: str = ""
    urlhaus_auth_key: str = ""
    virustotal_api_key: str = ""

    # Operational limits
    max_concurrent_analyses: int = 5

    # Similarity thresholds (override via config/heuristics.yaml)
    candidate_threshold: float = CANDIDATE_THRESHOLD
    report_threshold: float = REPORT_THRESHOLD
    high_threshold: float = HIGH_THRESHOLD

    # Domain lists
    known_domains: Set[str] = field(default_factory=lambda: set(KNOWN_DOMAINS))
    compound_tlds: Set[str] = field(default_factory=lambda: set(COMPOUND_TLDS))
    shorteners: list[str] = field(default_factory=lambda: list(DEFAULT_SHORTENERS))
    brands: list[str] = field(default_factory=lambda: list(DEFAULT_BRANDS))
    allowlist: Set[str] = field(default_factory=set)

    def __post_init__(self):
        """Normalize paths and load lists."""
        self.config_dir = Path(self.config_dir)
        self._load_lists()

    def _load_lists(self):
        """Load the allowlist from config files; entries extend the known domains."""
        allowlist_path = self.config_dir / "allowlist.txt"
        if allowlist_path.exists():
            raw_allowlist = self._load_list_file(allowlist_path)
            self.allowlist = {canonicalize_host(item) or item for item in raw_allowlist}
            self.known_domains = set(self.known_domains) | self.allowlist
            logger.info("Loaded %s allowlisted domains", len(self.allowlist))

    @staticmethod
    def _load_list_file(path: Path) -> Set[str]:
        """Load a list file, ignoring comments and empty lines."""
        items = set()
        with open(path, encoding="utf-8") as f:
            for line in f:
                line = line.strip()
                if line and not line.startswith("#"):
                    items.add(line.lower())
        return items

    @property
    def corpus_path(self) -> Path:
        """Legitimate-site corpus: config dir override, else the packaged file."""
        override = self.config_dir / "legitimate_sites.yaml"
        return override if override.exists() else DEFAULT_CORPUS_PATH

    @property
    def reputation_deadline(self) -> float:
        """Upper bound for one reputation lookup across every service and retry."""
        return self.reputation_timeout * (self.reputation_retries + 1) * REPUTATION_SERVICES + 1.0


def _load_heuristics(config_dir: Path) -> dict:
    """Load heuristic overrides from config/heuristics.yaml (optional)."""
    path = Path(config_dir or ".") / "heuristics.yaml"
    if not path.exists():
        return {}
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except (OSError, yaml.YAMLError) as exc:
        logger.warning("Failed to parse heuristics.yaml: %s", exc)
        return {}
    if not isinstance(data, dict):
        logger.warning("heuristics.yaml is not a mapping; ignoring")
        return {}

    def _coerce_float(raw) -> Optional[float]:
        if raw is None:
            return None
        try:
            return float(raw)
        except (TypeError, ValueError):
            logger.warning("Ignoring non-numeric threshold in heuristics.yaml: %r", raw)
            return None

    def _coerce_domains(raw) -> Optional[list[str]]:
        if not isinstance(raw, (list, tuple)):
            return None
        items = [str(item).strip().lower() for item in raw if str(item or "").strip()]
        return items or None

    similarity_cfg = data.get("similarity") or {}
    domains_cfg = data.get("domains") or {}
    if not isinstance(similarity_cfg, dict):
        similarity_cfg = {}
    if not isinstance(domains_cfg, dict):
        domains_cfg = {}

    return {
        "candidate_threshold": _coerce_float(similarity_cfg.get("candidate_threshold")),
        "report_threshold": _coerce_float(similarity_cfg.get("report_threshold")),
        "high_threshold": _coerce_float(similarity_cfg.get("high_threshold")),
        "compound_tlds": _coerce_domains(domains_cfg.get("compound_tlds")),
        "shorteners": _coerce_domains(domains_cfg.get("shorteners")),
        "brands": _coerce_domains(domains_cfg.get("brands")),
    }


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes", "on"}


def load_config(config_dir: Optional[Path] = None) -> Config:
    """Load configuration from environment variables."""
    load_dotenv()

    config_dir = Path(config_dir or os.getenv("CONFIG_DIR", "./config"))
    heuristics = _load_heuristics(config_dir)

    def _threshold(key: str, default: float) -> float:
        value = heuristics.get(key)
        return default if value is None else value

    extra_tlds = heuristics.get("compound_tlds") or []

    return Config(
        config_dir=config_dir,
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        reputation_enabled=_env_bool("REPUTATION_ENABLED", "true"),
        reputation_timeout=float(os.getenv("REPUTATION_TIMEOUT", "5")),
        reputation_retries=int(os.getenv("REPUTATION_RETRIES", "1")),
        reputation_cache_minutes=int(os.getenv("REPUTATION_CACHE_MINUTES", "15")),
        phishtank_api_key=os.getenv("PHISHTANK_API_KEY", ""),
        urlhaus_auth_key=os.getenv("URLHAUS_AUTH_KEY", ""),
        virustotal_api_key=os.getenv("VIRUSTOTAL_API_KEY", ""),
        max_concurrent_analyses=int(os.getenv("MAX_CONCURRENT_ANALYSES", "5")),
        candidate_threshold=_threshold("candidate_threshold", CANDIDATE_THRESHOLD),
        report_threshold=_threshold("report_threshold", REPORT_THRESHOLD),
        high_threshold=_threshold("high_threshold", HIGH_THRESHOLD),
        compound_tlds=set(COMPOUND_TLDS) | set(extra_tlds),
        shorteners=heuristics.get("shorteners") or list(DEFAULT_SHORTENERS),
        brands=heuristics.get("brands") or list(DEFAULT_BRANDS),
    )


def validate_config(config: Config) -> list[str]:
    """Validate configuration and return list of error messages."""
    errors: list[str] = []

    if not (
        0 < config.candidate_threshold <= config.report_threshold <= config.high_threshold <= 1
    ):
        errors.append(
            "Similarity thresholds must satisfy 0 < candidate <= report <= high <= 1 "
            f"(got {config.candidate_threshold}, {config.report_threshold}, {config.high_threshold})"
        )
    if config.reputation_timeout <= 0:
        errors.append("REPUTATION_TIMEOUT must be greater than 0")
    if config.reputation_retries < 0:
        errors.append("REPUTATION_RETRIES must be 0 or more")
    if config.max_concurrent_analyses < 1:
        errors.append("MAX_CONCURRENT_ANALYSES must be at least 1")

    if config.reputation_enabled and not config.virustotal_api_key:
        logger.info("No VIRUSTOTAL_API_KEY configured; VirusTotal lookups will be skipped")

    return errors
