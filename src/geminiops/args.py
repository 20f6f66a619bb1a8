"""Command-line token normalization.

Every command shares one tokenizer driven by a small declarative schema:

- `--name value` pairs are captured as `name -> value`; a flag followed by
  another `--flag` (or by nothing) is captured as `True`.
- Options the schema does not know about are still captured, untyped.
- Schema options declaring `int`/`float` are converted here, once.

Two scanning modes exist because call sites differ:

- "scan": the whole stream is scanned; leftover positionals form the prompt.
- "prompt_tail": scanning stops at the first token that is neither a flag nor
  an implicit image path; that token and everything after it is the prompt.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from .errors import InvalidArgumentError


MAX_IMAGES = 10

IMAGE_EXTENSIONS = ("png", "jpg", "jpeg", "gif", "webp", "bmp")

_IMAGE_PATH_RE = re.compile(r"\.(?:" + "|".join(IMAGE_EXTENSIONS) + r")$", re.IGNORECASE)

SCAN = "scan"
PROMPT_TAIL = "prompt_tail"


@dataclass(frozen=True)
class OptionSpec:
    """Declarative description of one `--name` option."""

    name: str
    type: Callable[[str], Any] = str
    aliases: Tuple[str, ...] = ()
    repeatable: bool = False


@dataclass
class ParsedArgs:
    positionals: List[str] = field(default_factory=list)
    options: Dict[str, Any] = field(default_factory=dict)
    images: List[str] = field(default_factory=list)
    prompt_tail: Optional[str] = None

    @property
    def prompt(self) -> str:
        if self.prompt_tail is not None:
            return self.prompt_tail
        return " ".join(self.positionals).strip()

    def get(self, name: str, default: Any = None) -> Any:
        return self.options.get(name, default)

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"_": list(self.positionals)}
        out.update(self.options)
        return out


def is_image_path(token: str) -> bool:
    return bool(_IMAGE_PATH_RE.search(str(token or "")))


def _coerce(opt: OptionSpec, flag: str, raw: Any) -> Any:
    if opt.type is str:
        return raw
    if raw is True:
        raise InvalidArgumentError(f"Option {flag} expects a value.")
    try:
        return opt.type(str(raw).strip())
    except (TypeError, ValueError):
        raise InvalidArgumentError(
            f"Option {flag} expects {'a number' if opt.type is float else 'an integer'}, got {raw!r}."
        ) from None


def _index_schema(schema: Iterable[OptionSpec]) -> Dict[str, OptionSpec]:
    lookup: Dict[str, OptionSpec] = {}
    for opt in schema:
        lookup["--" + opt.name] = opt
        for alias in opt.aliases:
            lookup[alias] = opt
    return lookup


def normalize_args(
    tokens: Sequence[str],
    schema: Iterable[OptionSpec] = (),
    *,
    mode: str = SCAN,
    implicit_images: bool = False,
    image_option: str = "image",
    max_images: int = MAX_IMAGES,
) -> ParsedArgs:
    """Turn raw tokens into a `ParsedArgs`.

    Images named through `--<image_option>` (or its aliases) and, when
    `implicit_images` is set, bare tokens with an image extension are collected
    in `ParsedArgs.images`. More than `max_images` raises InvalidArgumentError.
    """
    if mode not in {SCAN, PROMPT_TAIL}:
        raise ValueError(f"Unknown normalization mode: {mode!r}")

    lookup = _index_schema(schema)
    # Short aliases ("-i") only count as flags when the schema declares them.
    short_flags = {k for k in lookup if not k.startswith("--")}
    parsed = ParsedArgs()
    toks = [str(t) for t in tokens]

    def _flag_like(t: str) -> bool:
        return t.startswith("--") or t in short_flags

    i = 0
    while i < len(toks):
        t = toks[i]

        if _flag_like(t):
            opt = lookup.get(t)
            key = opt.name if opt is not None else t[2:]
            nxt = toks[i + 1] if i + 1 < len(toks) else None
            if nxt is not None and not _flag_like(nxt):
                raw: Any = nxt
                i += 2
            else:
                raw = True
                i += 1

            if opt is not None and opt.name == image_option:
                if raw is True:
                    raise InvalidArgumentError(f"Option {t} expects an image path.")
                parsed.images.append(raw)
                continue

            value = _coerce(opt, t, raw) if opt is not None else raw
            if opt is not None and opt.repeatable:
                parsed.options.setdefault(key, []).append(value)
            else:
                parsed.options[key] = value
            continue

        if implicit_images and is_image_path(t):
            parsed.images.append(t)
            i += 1
            continue

        if mode == PROMPT_TAIL:
            parsed.prompt_tail = " ".join(toks[i:]).strip()
            break

        parsed.positionals.append(t)
        i += 1

    if len(parsed.images) > max_images:
        raise InvalidArgumentError(
            f"Maximum {max_images} images supported per request. You provided {len(parsed.images)} images."
        )
    return parsed
