from __future__ import annotations

import re
from typing import Callable, TypeAlias

from alppi.errors import ValidationError

ConfigEdit: TypeAlias = "Callable[[ConfigDocument], ConfigDocument]"

SECTION_HEADER = re.compile(r"^\s*\[([^\]]+)\]\s*$")
COMMENTED_DIRECTIVE = re.compile(r"^\s*#\s*(Include|Server|SigLevel|Usage|CacheServer)\s*=")


class ConfigSection:
  """View onto a section of a ConfigDocument. start is the index of the header line,
  end is the index of the first line that doesn't belong to the section anymore."""
  name: str
  start: int
  end: int
  directives: list[tuple[str, str | None]]

  def __init__(self, name: str, start: int, end: int, directives: list[tuple[str, str | None]]):
    self.name = name
    self.start = start
    self.end = end
    self.directives = directives

  def values(self, key: str) -> list[str | None]:
    return [value for k, value in self.directives if k == key]

  def has_directive(self, key: str, value: str | None = None) -> bool:
    return any(k == key and (value is None or v == value) for k, v in self.directives)


class ConfigDocument:
  """Working copy of a pacman.conf-style file. All lines are kept verbatim (including comments
  and blank lines), so render() of an unmodified document returns exactly the parsed text."""
  lines: list[str]

  def __init__(self, lines: list[str] | None = None):
    self.lines = list(lines) if lines is not None else [""]

  @classmethod
  def parse(cls, text: str) -> ConfigDocument:
    return ConfigDocument(text.split("\n"))

  def render(self) -> str:
    return "\n".join(self.lines)

  def copy(self) -> ConfigDocument:
    return ConfigDocument(self.lines)

  def sections(self) -> list[ConfigSection]:
    result: list[ConfigSection] = []
    current: ConfigSection | None = None
    for idx, line in enumerate(self.lines):
      header = SECTION_HEADER.match(line)
      if header:
        if current is not None:
          current.end = idx
        current = ConfigSection(header.group(1).strip(), idx, len(self.lines), [])
        result.append(current)
        continue
      directive = self.parse_directive(line)
      if current is not None and directive is not None:
        current.directives.append(directive)
    return result

  def section(self, name: str) -> ConfigSection | None:
    return next((section for section in self.sections() if section.name == name), None)

  def section_names(self) -> list[str]:
    return [section.name for section in self.sections()]

  def has_section(self, name: str, include: str | None = None) -> bool:
    section = self.section(name)
    if section is None:
      return False
    return include is None or section.has_directive("Include", include)

  @staticmethod
  def parse_directive(line: str) -> tuple[str, str | None] | None:
    stripped = line.strip()
    if not stripped or stripped.startswith("#"):
      return None
    if "=" in stripped:
      key, value = stripped.split("=", 1)
      return key.strip(), value.strip()
    return stripped, None


def enable_repository(name: str, include: str) -> ConfigEdit:
  """Edit that makes sure a repository section exists and pulls from the given mirror list.
  A commented-out section (like the stock #[multilib]) gets uncommented, otherwise the section
  is appended to the end of the file."""

  def edit(document: ConfigDocument) -> ConfigDocument:
    result = document.copy()
    section = result.section(name)
    if section is not None:
      if not section.has_directive("Include", include):
        result.lines.insert(section.start + 1, f"Include = {include}")
      return result

    commented_header = re.compile(rf"^\s*#\s*\[{re.escape(name)}\]\s*$")
    header_idx = next((idx for idx, line in enumerate(result.lines) if commented_header.match(line)), None)
    if header_idx is not None:
      result.lines[header_idx] = f"[{name}]"
      idx = header_idx + 1
      while idx < len(result.lines) and COMMENTED_DIRECTIVE.match(result.lines[idx]):
        result.lines[idx] = result.lines[idx].strip().lstrip("#").strip()
        idx += 1
      section = result.section(name)
      assert section is not None
      if not section.has_directive("Include", include):
        result.lines.insert(section.start + 1, f"Include = {include}")
      return result

    content = list(result.lines)
    while content and content[-1].strip() == "":
      content.pop()
    if content:
      content.append("")
    result.lines = [*content, f"[{name}]", f"Include = {include}", ""]
    return result

  return edit


def append_directive(section_name: str, key: str, value: str | None = None) -> ConfigEdit:
  """Edit that appends a directive at the end of a section (after its last directive). Since
  pacman applies later directives as overrides, appending is the way to change a setting."""
  line = key if value is None else f"{key} = {value}"

  def edit(document: ConfigDocument) -> ConfigDocument:
    result = document.copy()
    section = result.section(section_name)
    if section is None:
      raise ValidationError("pacman.conf", f"section [{section_name}] not found")
    if section.directives and section.directives[-1] == (key, value):
      return result
    insert_at = section.start + 1
    for idx in range(section.start + 1, section.end):
      if ConfigDocument.parse_directive(result.lines[idx]) is not None:
        insert_at = idx + 1
    result.lines.insert(insert_at, line)
    return result

  return edit
