"""Shared fixtures: in-memory .nupkg builder and Constants isolation."""

import os
import zipfile

import pytest

from constants import Constants

NUSPEC_TEMPLATE = """<?xml version="1.0" encoding="utf-8"?>
<package xmlns="http://schemas.microsoft.com/packaging/2011/08/nuspec.xsd">
  <metadata>
    <id>{name}</id>
    <version>{version}</version>
    <dependencies>
{deps}
    </dependencies>
  </metadata>
</package>"""


def nuspec_xml(name, version, deps=()):
    """Render a nuspec with ``deps`` as (id, version-constraint) pairs."""
    lines = "\n".join(
        f'      <dependency id="{dep_id}" version="{constraint}" />' for dep_id, constraint in deps
    )
    return NUSPEC_TEMPLATE.format(name=name, version=version, deps=lines)


def write_nupkg(path, name, version, deps=(), extra_files=None):
    """Write a minimal .nupkg at ``path`` and return the path."""
    os.makedirs(os.path.dirname(str(path)) or ".", exist_ok=True)
    with zipfile.ZipFile(str(path), "w") as archive:
        archive.writestr(f"{name}.nuspec", nuspec_xml(name, version, deps))
        archive.writestr("[Content_Types].xml", "<Types />")
        archive.writestr("_rels/.rels", "<Relationships />")
        archive.writestr(f"{name}.psd1", f"@{{ ModuleVersion = '{version}' }}")
        for member, content in (extra_files or {}).items():
            archive.writestr(member, content)
    return str(path)


@pytest.fixture
def make_nupkg():
    return write_nupkg


@pytest.fixture(autouse=True)
def _restore_constants():
    """Undo Constants changes made by config loading or CLI overrides."""
    saved = {k: v for k, v in vars(Constants).items() if k.isupper()}
    yield
    for key, value in saved.items():
        setattr(Constants, key, value)
