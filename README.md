# geigerscan

`geigerscan` is a library for describing how much `unsafe` code a crate and
its dependencies contain. It reads the JSON metadata document of a
workspace, indexes its packages, builds the dependency graph of a root
package, and holds the counts of safe and unsafe items in a report model
that round-trips through JSON.

It needs Python 3.10 or later and depends only on `semver`. The `test`
extra pulls in `pytest` for the test suite.

## The report model

`geigerscan.report` holds the data types of a safety report. Counts of safe
and unsafe items are kept in `Count` objects, grouped per kind of item
(`functions`, `exprs`, `item_impls`, `item_traits`, `methods`) in a
`CounterBlock`:

```python
from geigerscan.report import Count, CounterBlock

functions = Count()
functions.count(True)    # one unsafe function
functions.count(False)   # one safe function

print(CounterBlock().has_unsafe())       # False
print((functions + Count()).to_dict())   # {'safe': 1, 'unsafe_': 1}
```

`UnsafeInfo` pairs the counters of used and unused code with whether the
package forbids unsafe code. `ReportEntry` and `QuickReportEntry` attach
that to a `PackageInfo`, whose `add_dependency` files a dependency under
its `DependencyKind`.

`SafetyReport` and `QuickSafetyReport` round-trip through JSON with
`to_json` / `from_json` (and `to_dict` / `from_dict`). Packages and sets are
written in sorted order, so the same report always gives the same text:

```python
from geigerscan.report import SafetyReport

report = SafetyReport.from_json(text)
assert SafetyReport.from_json(report.to_json()) == report
```

Malformed input raises `ValueError`. A package's origin is one of
`GitSource`, `RegistrySource` or `PathSource`; `source_from_dict` reads any
of them back from its serialised form.

## Format patterns

`geigerscan.format.Pattern.try_build` parses the pattern used to print a
package: `{p}` is the package name and version, `{l}` its licence, `{r}`
its repository, `{{` a literal brace, and anything else is copied as text.
An unknown argument or an unbalanced brace raises `FormatError`:

```python
from geigerscan.format import FormatError, Pattern

pattern = Pattern.try_build("{p} ({l})")

try:
    Pattern.try_build("{x}")
except FormatError as error:
    print(error.message)   # unsupported pattern `x`
```

The same module has `Charset` (whose `from_str` ignores case),
`CrateDetectionStatus`, `SymbolKind` and `get_kind_group_name`, which gives
the heading of a group of build or dev dependencies.

## Printing settings

`geigerscan.print_config` has `OutputFormat` (`from_str` takes the exact
name: `Ascii`, `Json`, `GitHubMarkdown`, `Ratio`, `Utf8`), `PrintConfig`
with `PrintConfig.from_args`, `colorize`, which wraps text in a terminal
colour chosen by detection status (plain for `GitHubMarkdown`), and
`EmojiSymbols`, which gives the lock, question mark and radiation symbols,
falling back to `:)`, `?` and `!` where emoji are not wanted.

## Arguments

`geigerscan.args.Args.parse_args(argv)` parses the option set (`--all`,
`--features`, `--output-format`, `--update-readme`, `-v`/`-vv`, `-Z` and so
on) into an `Args` value; bad values raise `ArgsError`. Asking for
`--update-readme` switches the output format to `GitHubMarkdown`. The help
text is in `geigerscan.args.HELP`.

## Metadata and package lookup

`geigerscan.metadata.Metadata.from_json` loads the metadata document of a
workspace. `Metadata.package`, `root_package` and `deps_not_replaced` look
packages and their resolved dependencies up; `VersionReq` parses and
matches version requirements.

`geigerscan.krates.Krates.from_metadata` builds an index that answers
`node_for_kid`, `krates_by_name` and `query_resolve` (a package
specification such as `name`, `name:version` or `name@version`). The
functions `package_id_licence`, `package_id_name_and_version`,
`package_id_repository`, `matches_ignoring_source` and `display_package`
work through that index.

`geigerscan.sources.to_geiger_package_id` maps a metadata package id to a
report `PackageId`, working out whether the package came from a registry, a
git repository or a local path (`handle_source_repr`, `handle_path_source`).

## Dependency graph

`geigerscan.graph.build_graph(args, metadata, krates, config_host, cfgs,
root_package_id)` walks the dependencies of a root package into a `Graph`.
`build_graph_prerequisites` decides which extra dependency kinds to follow
(`geigerscan.extra_deps.ExtraDeps`, from `--build-dependencies`,
`--dev-dependencies` and `--all-dependencies`) and which target to match.
Platform-specific dependencies are filtered with `Platform.matches` against
a list of `Cfg` values, which the caller supplies.

`geigerscan.totals.TotalPackageCounts` keeps package counts per detection
status; its `get_total_detection_status` gives the verdict for a whole tree.

Warnings about packages that cannot be found are sent through the standard
`logging` module.

## What it does not do

- It does not scan source files: the counts in a report must come from
  elsewhere.
- It does not run the build tool; the metadata JSON and the list of `Cfg`
  values are inputs.
- It does not lay out the table of per-package rows or write a section into
  a README file.
- It installs no command; `Args.parse_args` only parses.