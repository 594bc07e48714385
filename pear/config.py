from __future__ import annotations
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Union
import yaml

from .environment import Environment
from .errors import ConfigError, ResolutionError
from .utils import strip_comments


@dataclass
class Command:
    name: str
    exec: str = ""
    logfile: str = ""
    rtags_logfile: str = ""
    append: List[str] = field(default_factory=list)
    prepend: List[str] = field(default_factory=list)
    filter_out: List[str] = field(default_factory=list)

    def merge(self, other: "Command") -> None:
        """Upsert: non-empty scalars overwrite, lists accumulate."""
        if other.exec:
            self.exec = other.exec
        if other.logfile:
            self.logfile = other.logfile
        if other.rtags_logfile:
            self.rtags_logfile = other.rtags_logfile
        self.append.extend(other.append)
        self.prepend.extend(other.prepend)
        self.filter_out.extend(other.filter_out)


# A configuration value is either a single string or a list of strings.
@dataclass(frozen=True)
class Scalar:
    value: str


@dataclass(frozen=True)
class StrList:
    values: List[str]


Value = Union[Scalar, StrList]


class _Parser:
    """Walks a composed YAML node tree and reports errors with file lines."""

    def __init__(self, filename: str, line_map: List[int]):
        self.filename = filename
        self.line_map = line_map

    def line_of(self, index: int) -> int:
        # 'index' is a 0-based line in the comment-stripped text.
        if index < len(self.line_map):
            return self.line_map[index] + 1
        last = self.line_map[-1] if self.line_map else -1
        return last + 1 + (index - len(self.line_map)) + 1

    def error(self, node_or_mark, message: str) -> ConfigError:
        mark = getattr(node_or_mark, "start_mark", node_or_mark)
        if mark is None:
            return ConfigError(message, self.filename)
        return ConfigError(message, self.filename, self.line_of(mark.line), mark.column + 1)

    def value(self, node: yaml.Node) -> Value:
        if isinstance(node, yaml.ScalarNode):
            return Scalar(node.value)
        if isinstance(node, yaml.SequenceNode):
            out = []
            for item in node.value:
                if not isinstance(item, yaml.ScalarNode):
                    raise self.error(item, "expected string")
                out.append(item.value)
            return StrList(out)
        raise self.error(node, "expected string or list of strings")

    def as_string(self, node: yaml.Node) -> str:
        v = self.value(node)
        if not isinstance(v, Scalar):
            raise self.error(node, "expected string")
        return v.value

    def as_string_list(self, node: yaml.Node) -> List[str]:
        v = self.value(node)
        if isinstance(v, Scalar):
            return [v.value]
        return list(v.values)

    def mapping(self, node: yaml.Node) -> list:
        if not isinstance(node, yaml.MappingNode):
            raise self.error(node, "expected dictionary")
        pairs = []
        for key, val in node.value:
            if not isinstance(key, yaml.ScalarNode):
                raise self.error(key, "expected string key")
            pairs.append((key, val))
        return pairs


@dataclass
class Config:
    env: Environment = field(default_factory=Environment)
    commands: Dict[str, Command] = field(default_factory=dict)

    @staticmethod
    def load(path: str, env: Optional[Environment] = None) -> "Config":
        try:
            with open(path, "r", encoding="utf-8") as f:
                text = f.read()
        except OSError as e:
            raise ConfigError(f"cannot read configuration: {e.strerror or e}", path) from e
        cfg = Config(env=env if env is not None else Environment())
        cfg.parse(text, filename=path)
        return cfg

    def parse(self, text: str, filename: str = "") -> None:
        stripped, line_map = strip_comments(text)
        p = _Parser(filename, line_map)
        try:
            root = yaml.compose(stripped, Loader=yaml.SafeLoader)
        except yaml.MarkedYAMLError as e:
            mark = e.problem_mark or e.context_mark
            raise p.error(mark, e.problem or str(e)) from e
        except yaml.YAMLError as e:
            raise ConfigError(str(e), filename) from e
        if root is None:
            return

        # Duplicate section keys are kept by compose, in file order.
        for key, val in p.mapping(root):
            if key.value == "environment":
                self._parse_environment(p, val)
            elif key.value == "command":
                if isinstance(val, yaml.SequenceNode):
                    for item in val.value:
                        self._parse_command(p, item)
                else:
                    self._parse_command(p, val)
            else:
                raise p.error(key, f"unrecognized section name '{key.value}'")

    def _parse_environment(self, p: _Parser, node: yaml.Node) -> None:
        for key, val in p.mapping(node):
            if not isinstance(val, yaml.ScalarNode):
                raise p.error(val, "expected string")
            self.env.set_expanded(key.value, val.value)

    def _parse_command(self, p: _Parser, node: yaml.Node) -> None:
        names: List[str] = []
        tmp = Command(name="")
        for key, val in p.mapping(node):
            k = key.value
            if k == "name":
                names.extend(p.as_string_list(val))
            elif k == "exec":
                tmp.exec = p.as_string(val)
            elif k == "logfile":
                tmp.logfile = p.as_string(val)
            elif k == "rtags-logfile":
                tmp.rtags_logfile = p.as_string(val)
            elif k == "append":
                tmp.append.extend(p.as_string_list(val))
            elif k == "prepend":
                tmp.prepend.extend(p.as_string_list(val))
            elif k == "filter-out":
                tmp.filter_out.extend(p.as_string_list(val))
            else:
                raise p.error(key, f"unrecognized parameter name '{k}'")

        for name in names:
            name = self.env.expand(name)
            cmd = self.commands.get(name)
            if cmd is None:
                cmd = self.commands[name] = Command(name=name)
            cmd.merge(tmp)

    def command(self, name: str) -> Command:
        cmd = self.commands.get(name)
        if cmd is None:
            raise ResolutionError(f"command '{name}' has not been configured")
        return cmd
