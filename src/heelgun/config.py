# SPDX-License-Identifier: BSD-3-Clause

"""
Loads test targets from configuration files.

Three formats are supported:
  - JSON (C{.json}) and YAML (C{.yml}, C{.yaml}) files containing
    a C{targets} list, see L{parse_config}
  - Play Framework (v2) route files, which must be named C{routes},
    see L{parse_routes}

A configuration file that cannot be read or has the wrong structure
results in a L{ConfigError}. In route files, problems are limited to
the route they occur in: such a route is reported and skipped.
"""

from __future__ import annotations

import json
from logging import Logger, LoggerAdapter, getLogger
from pathlib import Path
from typing import Any, Callable, Iterable, Iterator, Mapping, Union

import yaml

from heelgun.generator import (
    AlphaNumeric,
    ArgGenerator,
    Choice,
    Fixed,
    IntRange,
    Magic,
    Numeric,
    Union as UnionGenerator,
)
from heelgun.target import Method, PathSegment, QueryParam, TestArg, TestTarget

LoggerT = Union[Logger, LoggerAdapter]

_LOG = getLogger(__name__)


class ConfigError(Exception):
    """Raised when test targets cannot be loaded from a configuration."""


def load_config(path: Path | str) -> list[TestTarget]:
    """
    Load test targets from a configuration file.

    The format is determined by the file name: a file named C{routes}
    is read as a Play Framework route file, otherwise the extension
    selects JSON or YAML.

    @raise ConfigError:
        If the file cannot be read, has an unsupported extension or
        does not describe valid test targets.
    """

    path = Path(path)
    if path.name == "routes":
        try:
            with open(path, encoding="utf-8") as inp:
                return list(parse_routes(inp, _LOG))
        except (OSError, UnicodeDecodeError) as ex:
            raise ConfigError(f'Cannot read "{path}": {ex}') from ex

    loaders: dict[str, Callable[[Any], Any]] = {
        ".json": json.load,
        ".yml": yaml.safe_load,
        ".yaml": yaml.safe_load,
    }
    try:
        loader = loaders[path.suffix.lower()]
    except KeyError:
        raise ConfigError(
            f'Unsupported configuration file "{path}": '
            "must be .json, .yml, .yaml or a file named \"routes\""
        ) from None

    try:
        with open(path, encoding="utf-8") as inp:
            document = loader(inp)
    except OSError as ex:
        raise ConfigError(f'Cannot read "{path}": {ex}') from ex
    except (ValueError, yaml.YAMLError) as ex:
        raise ConfigError(f'Cannot parse "{path}": {ex}') from ex

    return parse_config(document)


_TYPE_NAMES = {
    dict: "mapping",
    list: "list",
    str: "string",
    int: "integer",
    float: "number",
    bool: "boolean",
    type(None): "nothing",
}


def _expect_type(value: object, expected: type, where: str) -> Any:
    # Booleans are integers in Python, but not in the configuration.
    if isinstance(value, bool) or not isinstance(value, expected):
        actual = type(value)
        raise ConfigError(
            f"{where}: expected {_TYPE_NAMES.get(expected, expected.__name__)}, "
            f"got {_TYPE_NAMES.get(actual, actual.__name__)}"
        )
    return value


def _field(spec: Mapping[str, Any], name: str, where: str) -> Any:
    try:
        return spec[name]
    except KeyError:
        raise ConfigError(f'{where}: missing field "{name}"') from None


def parse_config(document: object) -> list[TestTarget]:
    """
    Build test targets from a parsed JSON or YAML document.

    The document must be a mapping with a C{targets} list; each target is
    a mapping with C{endpoint}, C{method} and an optional C{args} list.

    @raise ConfigError:
        If the document does not describe valid test targets.
    """
    document = _expect_type(document, dict, "configuration")
    targets = _field(document, "targets", "configuration")
    return [
        parse_target(spec, f"targets[{index:d}]")
        for index, spec in enumerate(_expect_type(targets, list, "targets"))
    ]


def parse_target(spec: object, where: str = "target") -> TestTarget:
    """
    Build a test target from its configuration.

    @param where:
        Location of C{spec} within the configuration, used in error messages.
    @raise ConfigError:
        If C{spec} does not describe a valid test target.
    """
    spec = _expect_type(spec, dict, where)
    endpoint = _expect_type(_field(spec, "endpoint", where), str, f"{where}.endpoint")
    method_name = _expect_type(_field(spec, "method", where), str, f"{where}.method")
    try:
        method = Method.parse(method_name)
    except ValueError as ex:
        raise ConfigError(f"{where}.method: {ex}") from ex
    arg_specs = _expect_type(spec.get("args", []), list, f"{where}.args")
    args = [
        parse_arg(arg_spec, f"{where}.args[{index:d}]")
        for index, arg_spec in enumerate(arg_specs)
    ]
    return TestTarget(endpoint, method, args)


def parse_arg(spec: object, where: str = "arg") -> TestArg:
    """
    Build a test argument from its configuration.

    The C{type} field selects C{path} (the default) or C{query}.
    A path argument has a C{generator}, a query argument has a C{name}
    (or C{key}) and a C{value} generator. Generators that are left out
    default to the magic generator.

    @raise ConfigError:
        If C{spec} does not describe a valid argument.
    """
    spec = _expect_type(spec, dict, where)
    arg_type = _expect_type(spec.get("type", "path"), str, f"{where}.type")
    if arg_type == "path":
        return PathSegment(
            parse_generator(spec.get("generator"), f"{where}.generator")
        )
    elif arg_type == "query":
        name_field = "name" if "name" in spec or "key" not in spec else "key"
        return QueryParam(
            parse_generator(spec.get(name_field), f"{where}.{name_field}"),
            parse_generator(spec.get("value"), f"{where}.value"),
        )
    else:
        raise ConfigError(f'{where}.type: unknown argument type "{arg_type}"')


def _parse_fixed(spec: Mapping[str, Any], where: str) -> ArgGenerator:
    return Fixed(_expect_type(_field(spec, "value", where), str, f"{where}.value"))


def _parse_choice(spec: Mapping[str, Any], where: str) -> ArgGenerator:
    values = _expect_type(_field(spec, "values", where), list, f"{where}.values")
    return Choice(
        [
            _expect_type(value, str, f"{where}.values[{index:d}]")
            for index, value in enumerate(values)
        ]
    )


def _parse_range(spec: Mapping[str, Any], where: str) -> ArgGenerator:
    low = _expect_type(_field(spec, "low", where), int, f"{where}.low")
    high = _expect_type(_field(spec, "high", where), int, f"{where}.high")
    try:
        return IntRange(low, high)
    except ValueError as ex:
        raise ConfigError(f"{where}: {ex}") from ex


def _parse_length(spec: Mapping[str, Any], where: str) -> int:
    length: int = _expect_type(_field(spec, "len", where), int, f"{where}.len")
    if length < 0:
        raise ConfigError(f"{where}.len: must not be negative, got {length:d}")
    return length


def _parse_numeric(spec: Mapping[str, Any], where: str) -> ArgGenerator:
    return Numeric(_parse_length(spec, where))


def _parse_alphanumeric(spec: Mapping[str, Any], where: str) -> ArgGenerator:
    return AlphaNumeric(_parse_length(spec, where))


def _parse_union(spec: Mapping[str, Any], where: str) -> ArgGenerator:
    generators = _expect_type(
        _field(spec, "generators", where), list, f"{where}.generators"
    )
    return UnionGenerator(
        [
            parse_generator(generator, f"{where}.generators[{index:d}]")
            for index, generator in enumerate(generators)
        ]
    )


def _parse_magic(spec: Mapping[str, Any], where: str) -> ArgGenerator:
    return Magic()


_GENERATOR_PARSERS: dict[str, Callable[[Mapping[str, Any], str], ArgGenerator]] = {
    "magic": _parse_magic,
    "fixed": _parse_fixed,
    "choice": _parse_choice,
    "range": _parse_range,
    "numeric": _parse_numeric,
    "alphanumeric": _parse_alphanumeric,
    "union": _parse_union,
}


def parse_generator(spec: object, where: str = "generator") -> ArgGenerator:
    """
    Build an argument generator from its configuration.

    The C{type} field selects the kind of generator; when it is left out,
    or the whole specification is left out, the magic generator is used.

    @raise ConfigError:
        If C{spec} does not describe a valid generator.
    """
    if spec is None:
        return Magic()
    spec = _expect_type(spec, dict, where)
    gen_type = _expect_type(spec.get("type", "magic"), str, f"{where}.type")
    try:
        parser = _GENERATOR_PARSERS[gen_type]
    except KeyError:
        raise ConfigError(
            f'{where}.type: unknown generator type "{gen_type}"'
        ) from None
    return parser(spec, where)


_ROUTE_METHODS = {method.value: (method,) for method in Method}
_ROUTE_METHODS["*"] = tuple(Method)


def parse_route_uri(uri: str) -> tuple[str, list[TestArg]]:
    """
    Translate the URI pattern of a route into an endpoint and arguments.

    Path components up to the first parameter (C{:name} or
    C{$name<regex>}) form the endpoint. Every parameter becomes a path
    argument with the magic generator; literal components after the
    first parameter become path arguments with a fixed value.

    @return: C{(endpoint, args)}
    @raise ConfigError:
        If the pattern contains a wildcard; those are not supported.
    """
    endpoint = ""
    args: list[TestArg] = []
    has_param = False
    for component in uri.split("/"):
        if "*" in component:
            raise ConfigError(
                f'could not read URI "{uri}": '
                'routes with wildcard "*" are currently not supported'
            )
        if component.startswith((":", "$")):
            args.append(PathSegment(Magic()))
            has_param = True
        elif has_param:
            args.append(PathSegment(Fixed(component)))
        elif component:
            endpoint += "/" + component
    return endpoint, args


def parse_routes(lines: Iterable[str], logger: LoggerT) -> Iterator[TestTarget]:
    """
    Build test targets from the lines of a Play Framework route file.

    Each route line consists of a method (or C{*} for all methods),
    a URI pattern and an action; only the method and URI pattern are used.
    Lines for other methods and non-route lines are skipped.

    @param lines:
        Contents of a route file.
    @param logger:
        Routes that cannot be used are reported here.
    @return:
        Yields one test target per route and method.
    """
    for lineno, line in enumerate(lines, 1):
        idx = line.find("#")
        if idx != -1:
            line = line[:idx]
        words = line.split()
        if not words:
            continue
        if len(words) < 2 or words[0] not in _ROUTE_METHODS:
            logger.debug("Line %d: not a route for a supported method", lineno)
            continue
        method_name, uri = words[:2]
        try:
            endpoint, args = parse_route_uri(uri)
        except ConfigError as ex:
            logger.warning("Line %d: %s", lineno, ex)
            logger.warning("Ignoring route due to the previous error.")
            continue
        for method in _ROUTE_METHODS[method_name]:
            yield TestTarget(endpoint, method, args)
