"""Templates for workspace initialization."""

CONFIG_YAML_TEMPLATE = """# polybump workspace configuration

# Globs (relative to this workspace root) of manifests to skip.
# Evaluated in order, last match wins, "!" re-includes.
ignore: []

# Branch that "polybump check" compares against.
base_branch: {base_branch}

# Package id whose version "polybump check" reports as the workspace version.
# latest_package: packages/core/package.json

# Publish command per package id or ecosystem (node, python, rust, dart, java, csharp).
# {{name}}, {{version}} and {{path}} are substituted.
publish: {{}}
#  node: npm publish
#  packages/api/pyproject.toml: uv build && uv publish

# Packages that must be bumped whenever a matching package is.
update_on: {{}}
#  "packages/schema/*": [packages/client/package.json]

continue_on_error: false

changelog:
  enabled: true
  filename: CHANGELOG.md
"""
