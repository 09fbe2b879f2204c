from __future__ import annotations
import json
from dataclasses import dataclass, fields
from importlib import resources
from jsonschema import validate as jsonschema_validate, ValidationError
from .errors import ConfigError

@dataclass(frozen=True)
class Options:
    max_digest_count: int = 16
    hex_dump_limit: int = 0

def load_schema(name: str)->dict:
    return json.loads(resources.files('tcgeventlog.schemas').joinpath(name).read_text(encoding='utf-8'))

def options_from_dict(obj: dict)->Options:
    try:
        jsonschema_validate(obj, load_schema('options.schema.json'))
    except ValidationError as e:
        raise ConfigError(f'options schema validation failed: {e.message}')
    known = {f.name for f in fields(Options)}
    return Options(**{k: v for k, v in obj.items() if k in known})

def load_options(path: str | None)->Options:
    if not path: return Options()
    try:
        with open(path, 'r', encoding='utf-8') as f: data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigError(f'cannot read options {path}: {e}')
    if not isinstance(data, dict): raise ConfigError('options must be a JSON object')
    return options_from_dict(data)
