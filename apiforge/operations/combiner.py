"""OpenAPI Document Combiner

Merges several per-service OpenAPI documents into one.

Features:
- Inputs from explicit files or a YAML services config
- Service path prefixes and a global base URL
- Include/exclude tag filtering
- ``service:<name>`` tag on every kept operation
- Later inputs override earlier ones on path/method conflicts (counted)
- Structural validation of the combined output
- YAML or JSON output
"""
from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from apiforge.core.config import settings
from apiforge.core.errors import (
    AppError,
    ErrorCode,
    Ok,
    Result,
    file_not_found,
    file_read_error,
    file_write_error,
    validation_error,
)
from apiforge.core.logging import get_logger

log = get_logger("combiner")

DEFAULT_TITLE = "Combined API"
DEFAULT_VERSION = "1.0.0"
SERVICE_SUFFIXES = ("-service", ".service", "-api", ".api")
HTTP_METHODS = frozenset({"get", "put", "post", "delete", "options", "head", "patch", "trace"})


# ============================================================================
# Configuration
# ============================================================================

class ServiceConfig(BaseModel):
    name: str
    spec_file: str
    path_prefix: str = ""
    tags: list[str] = Field(default_factory=list)
    description: str = ""


class CombinationSettings(BaseModel):
    include_tags: list[str] = Field(default_factory=list)
    exclude_tags: list[str] = Field(default_factory=list)


class ServicesConfig(BaseModel):
    """Shape of a ``services.yaml`` file."""
    title: str = ""
    version: str = ""
    description: str = ""
    base_url: str = ""
    services: list[ServiceConfig] = Field(default_factory=list)
    settings: CombinationSettings = Field(default_factory=CombinationSettings)


def load_services_config(path: Path) -> Result[ServicesConfig, AppError]:
    if not path.exists():
        return file_not_found(path, origin="combiner")
    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except OSError as e:
        return file_read_error(path, str(e), origin="combiner", cause=e)
    except yaml.YAMLError as e:
        return file_read_error(path, f"invalid YAML: {e}", origin="combiner", cause=e)
    try:
        return Ok(ServicesConfig.model_validate(raw))
    except PydanticValidationError as e:
        return validation_error(f"invalid services config {path}: {e.error_count()} error(s)",
            code=ErrorCode.E2002_INVALID_FORMAT, origin="combiner",
            errors=[{"field": ".".join(str(p) for p in err["loc"]), "message": err["msg"]} for err in e.errors()])


@dataclass
class CombinerConfig:
    output_file: Path = Path("combined-api.yaml")
    format: str = ""
    title: str = DEFAULT_TITLE
    version: str = DEFAULT_VERSION
    description: str = ""
    base_url: str = ""
    config_file: Path | None = None
    service_prefix: dict[str, str] = field(default_factory=dict)
    include_tags: list[str] = field(default_factory=list)
    exclude_tags: list[str] = field(default_factory=list)
    validate_output: bool = True


@dataclass
class CombinationStats:
    input_files: int = 0
    services_combined: int = 0
    total_paths: int = 0
    total_operations: int = 0
    conflicts: int = 0


@dataclass(frozen=True, slots=True)
class LoadedSpec:
    document: dict[str, Any]
    source: Path
    service: str
    prefix: str


def service_name(path: Path) -> str:
    """File stem minus a trailing ``-service``/``.service``/``-api``/``.api``."""
    name = path.stem
    for suffix in SERVICE_SUFFIXES:
        name = name.removesuffix(suffix)
    return name


# ============================================================================
# Combiner
# ============================================================================

class Combiner:
    """Loads, filters and merges OpenAPI documents.
    
    Usage:
        combiner = Combiner(CombinerConfig(output_file=Path("api.yaml")))
        combiner.add_input(Path("users-service.yaml"))
        result = combiner.run()
    """
    
    def __init__(self, config: CombinerConfig):
        self.config = config
        self.inputs: list[tuple[Path, str | None]] = []
        self.specs: list[LoadedSpec] = []
        self.combined: dict[str, Any] | None = None
        self.stats = CombinationStats()
    
    def add_input(self, path: Path, service: str | None = None) -> Combiner:
        self.inputs.append((path, service))
        return self
    
    def load_config(self) -> Result[None, AppError]:
        """Add services from the config file; its metadata fills unset defaults."""
        if self.config.config_file is None:
            return Ok(None)
        result = load_services_config(self.config.config_file)
        if result.is_err():
            return result
        services = result.unwrap()
        base_dir = self.config.config_file.parent
        
        for svc in services.services:
            spec_path = Path(svc.spec_file)
            self.inputs.append((spec_path if spec_path.is_absolute() else base_dir / spec_path, svc.name))
            if svc.path_prefix:
                self.config.service_prefix.setdefault(svc.name, svc.path_prefix)
        
        cfg = self.config
        if services.title and cfg.title == DEFAULT_TITLE:
            cfg.title = services.title
        if services.version and cfg.version == DEFAULT_VERSION:
            cfg.version = services.version
        cfg.description = cfg.description or services.description
        cfg.base_url = cfg.base_url or services.base_url
        cfg.include_tags = cfg.include_tags or services.settings.include_tags
        cfg.exclude_tags = cfg.exclude_tags or services.settings.exclude_tags
        
        log.info("services_config_loaded", path=str(self.config.config_file), services=len(services.services))
        return Ok(None)
    
    def load_specs(self) -> Result[None, AppError]:
        self.stats.input_files = len(self.inputs)
        for path, declared in self.inputs:
            result = load_document(path)
            if result.is_err():
                return result
            name = declared or service_name(path)
            spec = LoadedSpec(document=result.unwrap(), source=path, service=name,
                prefix=self.config.service_prefix.get(name, ""))
            self.specs.append(spec)
            log.debug("spec_loaded", path=str(path), service=name, prefix=spec.prefix,
                paths=len(spec.document.get("paths") or {}))
        return Ok(None)
    
    # ------------------------------------------------------------------
    # Combination
    # ------------------------------------------------------------------
    
    def transform_path(self, path: str, prefix: str) -> str:
        combined = f"{self.config.base_url}{prefix}{path}"
        while "//" in combined:
            combined = combined.replace("//", "/")
        return combined
    
    def keep(self, operation: dict[str, Any]) -> bool:
        tags = set(operation.get("tags") or ())
        if self.config.include_tags and not tags.intersection(self.config.include_tags):
            return False
        return not tags.intersection(self.config.exclude_tags)
    
    def combine(self) -> Result[dict[str, Any], AppError]:
        if not self.specs:
            return validation_error("no specifications loaded", code=ErrorCode.E2001_REQUIRED_FIELD_MISSING,
                origin="combiner")
        
        info: dict[str, Any] = {"title": self.config.title, "version": self.config.version}
        if self.config.description:
            info["description"] = self.config.description
        paths: dict[str, dict[str, Any]] = {}
        components: dict[str, dict[str, Any]] = {}
        
        for spec in self.specs:
            self.stats.services_combined += 1
            service_tag = f"service:{spec.service}"
            
            for path, item in (spec.document.get("paths") or {}).items():
                kept = {m: op for m, op in (item or {}).items()
                        if m in HTTP_METHODS and isinstance(op, dict) and self.keep(op)}
                if not kept:
                    continue
                target = paths.setdefault(self.transform_path(path, spec.prefix), {})
                for method, op in kept.items():
                    op = dict(op)
                    tags = list(op.get("tags") or ())
                    if service_tag not in tags:
                        op["tags"] = [service_tag, *tags]
                    if method in target:
                        self.stats.conflicts += 1
                        log.warning("operation_overridden", method=method, path=path,
                            previous=_service_of(target[method]), current=spec.service)
                    target[method] = op
            
            for section, entries in (spec.document.get("components") or {}).items():
                components.setdefault(section, {}).update(entries or {})
        
        self.stats.total_paths = len(paths)
        self.stats.total_operations = sum(len(methods) for methods in paths.values())
        
        self.combined = {"openapi": settings.OPENAPI_VERSION, "info": info, "paths": paths}
        if components:
            self.combined["components"] = components
        log.info("specs_combined", services=self.stats.services_combined, paths=self.stats.total_paths,
            operations=self.stats.total_operations, conflicts=self.stats.conflicts)
        return Ok(self.combined)
    
    def validate_output(self) -> Result[None, AppError]:
        doc = self.combined
        if doc is None:
            return validation_error("no combined specification available", origin="combiner")
        checks = (
            (bool(doc.get("openapi")), "OpenAPI version is required"),
            (bool(doc["info"].get("title")), "API title is required"),
            (bool(doc["info"].get("version")), "API version is required"),
            (bool(doc["paths"]), "combined specification has no paths"),
        )
        for passed, message in checks:
            if not passed:
                return validation_error(message, origin="combiner")
        for path, methods in doc["paths"].items():
            if not methods:
                return validation_error(f"path {path} has no operations", origin="combiner")
            for method, op in methods.items():
                if not op.get("responses"):
                    return validation_error(f"operation {method} {path} has no responses", origin="combiner")
        return Ok(None)
    
    def write(self) -> Result[Path, AppError]:
        path = self.config.output_file
        fmt = (self.config.format or ("json" if path.suffix.lower() == ".json" else settings.OUTPUT_FORMAT)).lower()
        if fmt not in ("yaml", "yml", "json"):
            return validation_error(f"unsupported format: {fmt} (supported: yaml, json)",
                code=ErrorCode.E2002_INVALID_FORMAT, origin="combiner")
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            text = json.dumps(self.combined, indent=2) if fmt == "json" else \
                yaml.safe_dump(self.combined, sort_keys=False, allow_unicode=True)
            path.write_text(text, encoding="utf-8")
        except OSError as e:
            return file_write_error(path, str(e), origin="combiner", cause=e)
        log.info("combined_spec_written", path=str(path), format=fmt)
        return Ok(path)
    
    def run(self) -> Result[Path, AppError]:
        """Load config and specs, combine, optionally validate, and write."""
        steps = [self.load_config, self.load_specs, self.combine]
        if self.config.validate_output:
            steps.append(self.validate_output)
        for step in steps:
            result = step()
            if result.is_err():
                return result
        return self.write()


def load_document(path: Path) -> Result[dict[str, Any], AppError]:
    """Parse a YAML or JSON document (by suffix; unknown suffixes try YAML, which accepts JSON)."""
    if not path.exists():
        return file_not_found(path, origin="combiner")
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        return file_read_error(path, str(e), origin="combiner", cause=e)
    try:
        doc = json.loads(text) if path.suffix.lower() == ".json" else yaml.safe_load(text)
    except (ValueError, yaml.YAMLError) as e:
        return file_read_error(path, f"failed to parse: {e}", origin="combiner", cause=e)
    if not isinstance(doc, dict):
        return file_read_error(path, "document root must be a mapping", origin="combiner")
    return Ok(doc)


def _service_of(operation: dict[str, Any]) -> str:
    for tag in operation.get("tags") or ():
        if tag.startswith("service:"):
            return tag.removeprefix("service:")
    return "unknown"
