"""Type-driven default value generators.

Dispatch is an ordered table of (predicate, generator) pairs evaluated
against the column's normalized database type; the first match wins. Text
columns go through a second ordered table keyed on the column name so that
`email`, `city`, `company` and friends get domain-appropriate values.
"""

from __future__ import annotations

import math
import re
import string
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Optional

from relsynth.generator.constraints import RangeBound, apply_range_bounds
from relsynth.generator.context import GenerationContext
from relsynth.source_loader.base import ColumnSpec

# Non-key integer magnitude bands; wider types get wider bands
INTEGER_BANDS = {
    "int2": 1_000,
    "smallint": 1_000,
    "int4": 100_000,
    "integer": 100_000,
    "int": 100_000,
    "int8": 1_000_000,
    "bigint": 1_000_000,
}

SERIAL_TYPES = {"serial", "serial4", "bigserial", "serial8", "smallserial", "serial2"}

TEXT_TYPES = {"text", "varchar", "bpchar", "citext"}

CENT = 0.01

_TYPE_ARGS = re.compile(r"\([^)]*\)")


@dataclass(frozen=True)
class ColumnRequest:
    """Everything a generator needs to know about the value being produced."""

    column: ColumnSpec
    row_index: int
    is_primary_key: bool
    bound: Optional[RangeBound] = None

    @property
    def type_name(self) -> str:
        return normalize_type(self.column.db_type)


Generator = Callable[[GenerationContext, ColumnRequest], Any]


def normalize_type(db_type: str) -> str:
    """Lower-case a type name and drop length/precision arguments."""
    return " ".join(_TYPE_ARGS.sub("", db_type.lower()).split())


def is_integer_type(db_type: str) -> bool:
    type_name = normalize_type(db_type)
    return type_name in INTEGER_BANDS or "serial" in type_name


def _round2(value: float) -> float:
    return math.floor(value * 100 + 0.5) / 100


def _cents_up(value: float) -> float:
    return math.ceil(round(value * 100, 6)) / 100


def _cents_down(value: float) -> float:
    return math.floor(round(value * 100, 6)) / 100


# --------------------------------------------------------------------------- #
#  Scalar generators
# --------------------------------------------------------------------------- #


def _uuid(ctx: GenerationContext, req: ColumnRequest) -> str:
    return ctx.faker.uuid4()


def _integer(ctx: GenerationContext, req: ColumnRequest) -> int:
    type_name = req.type_name
    if type_name in SERIAL_TYPES or req.is_primary_key:
        return req.row_index + 1
    band_max = INTEGER_BANDS.get(type_name, 100_000)
    low, high = apply_range_bounds(req.bound, 1, band_max)
    return ctx.sampler.randint(low, high)


def _float_in(band_max: float) -> Generator:
    def generate(ctx: GenerationContext, req: ColumnRequest) -> float:
        low, high = apply_range_bounds(req.bound, 0, band_max, step=CENT)
        # Values are rounded to cents, so draw between the innermost cents
        low, high = _cents_up(low), _cents_down(high)
        value = _round2(ctx.sampler.uniform(low, max(low, high)))
        if req.bound is not None and not req.bound.contains(value):
            ctx.warn(f"{req.column.name}: no two-decimal value satisfies its check constraint")
        return value

    return generate


def _boolean(ctx: GenerationContext, req: ColumnRequest) -> bool:
    return ctx.sampler.bernoulli(0.5)


def _recent_instant(ctx: GenerationContext) -> datetime:
    return ctx.faker.date_time_between_dates(
        datetime_start=ctx.window_start,
        datetime_end=ctx.anchor,
        tzinfo=timezone.utc,
    )


def _timestamp(ctx: GenerationContext, req: ColumnRequest) -> str:
    instant = _recent_instant(ctx).astimezone(timezone.utc)
    return instant.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _date(ctx: GenerationContext, req: ColumnRequest) -> str:
    return _recent_instant(ctx).date().isoformat()


def _time(ctx: GenerationContext, req: ColumnRequest) -> str:
    _, sep, clock = _timestamp(ctx, req).partition("T")
    if not sep or not clock:
        return "00:00:00"
    return clock.split(".")[0] or "00:00:00"


def _text(ctx: GenerationContext, req: ColumnRequest) -> str:
    return generate_text_by_pattern(ctx, req.column.name)


def _fallback(ctx: GenerationContext, req: ColumnRequest) -> str:
    return ctx.faker.word()


TYPE_GENERATORS: list[tuple[Callable[[str], bool], Generator]] = [
    (lambda t: t.startswith("_") or t.endswith("[]"), lambda ctx, req: []),
    (lambda t: t == "uuid", _uuid),
    (lambda t: t in INTEGER_BANDS or t in SERIAL_TYPES, _integer),
    (lambda t: t in ("float4", "real"), _float_in(1_000)),
    (lambda t: t in ("float8", "double precision"), _float_in(10_000)),
    (lambda t: t in ("numeric", "decimal"), _float_in(10_000)),
    (lambda t: t in TEXT_TYPES or t.startswith("character"), _text),
    (lambda t: t in ("bool", "boolean"), _boolean),
    (lambda t: t == "date", _date),
    (lambda t: "timestamp" in t, _timestamp),
    (lambda t: t in ("time", "timetz") or t.startswith("time "), _time),
    (lambda t: t in ("json", "jsonb"), lambda ctx, req: {}),
]


def generate_default_value(ctx: GenerationContext, request: ColumnRequest) -> Any:
    """Produce a value from the first generator whose type predicate matches."""
    type_name = request.type_name
    for predicate, generator in TYPE_GENERATORS:
        if predicate(type_name):
            return generator(ctx, request)
    return _fallback(ctx, request)


# --------------------------------------------------------------------------- #
#  Text by column name
# --------------------------------------------------------------------------- #


def _title(ctx: GenerationContext) -> str:
    return " ".join(ctx.faker.words(nb=ctx.sampler.randint(2, 5)))


TEXT_PATTERNS: list[tuple[re.Pattern, Callable[[GenerationContext], str]]] = [
    (re.compile(r"email"), lambda ctx: ctx.faker.email()),
    (re.compile(r"(^|_)first_?name|\bfname\b|given_?name"), lambda ctx: ctx.faker.first_name()),
    (re.compile(r"(^|_)last_?name|\blname\b|surname|family_?name"), lambda ctx: ctx.faker.last_name()),
    (re.compile(r"user_?name|username|login|handle"), lambda ctx: ctx.faker.user_name()),
    (re.compile(r"\bname\b"), lambda ctx: ctx.faker.name()),
    (re.compile(r"phone|mobile|cell|tel"), lambda ctx: ctx.faker.phone_number()),
    (re.compile(r"address|addr"), lambda ctx: ctx.faker.street_address()),
    (re.compile(r"city|town"), lambda ctx: ctx.faker.city()),
    (re.compile(r"country|nation"), lambda ctx: ctx.faker.country_code()),
    (re.compile(r"zip|postal|postcode"), lambda ctx: ctx.faker.postcode()),
    (re.compile(r"url|website|link|href"), lambda ctx: ctx.faker.url()),
    (re.compile(r"description|desc|bio|about|summary"), lambda ctx: ctx.faker.sentence()),
    (re.compile(r"title|headline|subject"), _title),
    (re.compile(r"company|organisation|organization|org|employer"), lambda ctx: ctx.faker.company()),
    (re.compile(r"currency|ccy"), lambda ctx: ctx.faker.currency_code()),
]


def generate_text_by_pattern(ctx: GenerationContext, column_name: str) -> str:
    name = column_name.lower()
    for pattern, generator in TEXT_PATTERNS:
        if pattern.search(name):
            return generator(ctx)
    return generate_generic_text(ctx)


def generate_generic_text(ctx: GenerationContext) -> str:
    """Word, phrase, sentence, slug, alphanumeric token, or URL."""
    shape = ctx.sampler.randint(1, 6)
    if shape == 1:
        return ctx.faker.word()
    if shape == 2:
        return " ".join(ctx.faker.words(nb=ctx.sampler.randint(2, 4)))
    if shape == 3:
        return ctx.faker.sentence()
    if shape == 4:
        return ctx.faker.slug()
    if shape == 5:
        length = ctx.sampler.randint(6, 12)
        return ctx.faker.lexify(text="?" * length, letters=string.ascii_letters + string.digits)
    return ctx.faker.url()
