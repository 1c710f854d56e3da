import argparse
import asyncio
import logging
import os
import sys

from hdlscan.config import ConfigError, HelperConfig
from hdlscan.generators import (
    InstantiationGenerator,
    SignalDeclarator,
    TestbenchGenerator,
    generator_registry,
    testbench_filename,
)
from hdlscan.index import ProjectIndex
from hdlscan.navigation import build_hierarchy, find_definition, hover_text, render_tree
from hdlscan.strategy import parser_registry
from hdlscan.watcher import ProjectWatcher

logger = logging.getLogger("hdlhelper")

DOC_FORMATS = ["markdown", "csv"]


def _load_config(args: argparse.Namespace, root: str) -> HelperConfig:
    try:
        config = HelperConfig.load(root, getattr(args, "config", None))
    except ConfigError as exc:
        sys.exit(f"Error: {exc}")
    return config.with_cli_overrides(args)


def _parse_file(args: argparse.Namespace):
    """Parse ``args.file`` and return ``(module, config)`` or exit."""
    if not getattr(args, "file", None):
        sys.exit(
            f"Error: No file provided. Usage: hdlhelper.py {args.command} FILE | --module NAME"
        )

    if not os.path.isfile(args.file):
        sys.exit(f"Error: File not found: {args.file}")

    config = _load_config(args, os.path.dirname(os.path.abspath(args.file)))
    strategy = parser_registry.create(config.strategy)
    try:
        module = strategy.parse_file(args.file)
    except (ImportError, OSError) as exc:
        sys.exit(f"Error: {exc}")
    if module is None:
        sys.exit(f"Error: No module definition found in {args.file}")
    return module, config


def _load_module(args: argparse.Namespace):
    """Return ``(module, config)`` from FILE or from the project index.

    With ``--module NAME`` the module is looked up in the index of
    ``--root`` instead of being parsed from FILE.
    """
    if not getattr(args, "module", None):
        return _parse_file(args)
    if args.file:
        sys.exit("Error: Give either FILE or --module, not both")
    index = _open_index(args)
    module = index.get_module(args.module)
    if module is None:
        sys.exit(f"Error: Module not found: {args.module}")
    return module, index.config


def _open_index(args: argparse.Namespace) -> ProjectIndex:
    """Build and fully scan the index for ``args.root``."""
    if not os.path.isdir(args.root):
        sys.exit(f"Error: Directory not found: {args.root}")
    config = _load_config(args, args.root)
    index = ProjectIndex(args.root, config)
    asyncio.run(index.rescan_all())
    return index


def cmd_instantiate(args: argparse.Namespace) -> int:
    """Print an instantiation template for the module in FILE (or ``--module``).

    With ``--comments`` every port line carries the direction and type
    comment that ``declare`` reads back.
    """
    module, config = _load_module(args)
    generator = InstantiationGenerator(
        with_comments=args.comments,
        comment_column=config.comment_column,
    )
    print(generator.generate(module))
    return 0


def cmd_declare(args: argparse.Namespace) -> int:
    """Print signal declarations for instantiation text (FILE or stdin)."""
    if args.file:
        if not os.path.isfile(args.file):
            sys.exit(f"Error: File not found: {args.file}")
        with open(args.file, "r", encoding="utf-8", errors="replace") as fh:
            text = fh.read()
        root = os.path.dirname(os.path.abspath(args.file))
    else:
        text = sys.stdin.read()
        root = os.getcwd()

    config = _load_config(args, root)
    declarator = SignalDeclarator(
        storage=config.declaration_storage,
        ignore=config.declaration_ignore,
    )
    declarations = declarator.generate(text)
    if not declarations:
        sys.exit("Error: No connected signals with direction comments found. "
                 "Generate the instantiation with --comments first.")
    print(declarations)
    return 0


def cmd_testbench(args: argparse.Namespace) -> int:
    """Generate ``tb_<module>.sv`` next to the module's source (or in ``--output-dir``)."""
    module, config = _load_module(args)
    generator = TestbenchGenerator(
        clock_pattern=config.clock_pattern,
        reset_pattern=config.reset_pattern,
    )
    text = generator.generate(module)

    if args.stdout:
        print(text, end="")
        return 0

    out_dir = args.output_dir or os.path.dirname(os.path.abspath(module.source_file))
    out_path = os.path.join(out_dir, testbench_filename(module))
    if os.path.exists(out_path) and not args.force:
        sys.exit(f"Error: {out_path} already exists (use --force to overwrite)")

    os.makedirs(out_dir, exist_ok=True)
    with open(out_path, "w", encoding="utf-8") as fh:
        fh.write(text)
    logger.info("Wrote testbench for %s", module.name)
    print(out_path)
    return 0


def cmd_doc(args: argparse.Namespace) -> int:
    """Print Markdown or CSV documentation for the module in FILE (or ``--module``)."""
    module, config = _load_module(args)
    generator = generator_registry.create(
        args.doc_format,
        clock_pattern=config.clock_pattern,
        reset_pattern=config.reset_pattern,
    )
    print(generator.generate(module), end="")
    return 0


def cmd_scan(args: argparse.Namespace) -> int:
    """Index ROOT and list every module with its defining file."""
    index = _open_index(args)
    modules = sorted(index.get_all_modules(), key=lambda m: m.name)
    mode = "filelist" if index.filelist_mode else "directory"
    print(f"Indexed {len(modules)} module(s) from {len(index.files())} file(s) ({mode} mode)")

    width = max((len(m.name) for m in modules), default=0)
    for mod in modules:
        print(f"  {mod.name.ljust(width)}  {os.path.relpath(mod.source_file, index.root)}")

    duplicates = index.duplicate_names()
    if duplicates:
        print()
        print("Duplicate module names (last parse wins):")
        for name, paths in duplicates.items():
            rel = [os.path.relpath(p, index.root) for p in paths]
            print(f"  {name}: {', '.join(rel)}")
    return 0


def cmd_hierarchy(args: argparse.Namespace) -> int:
    """Print the instance tree below ``--top`` (or below every module)."""
    index = _open_index(args)
    if args.top and index.get_module(args.top) is None:
        sys.exit(f"Error: Module not found: {args.top}")
    print(render_tree(build_hierarchy(index, args.top)))
    return 0


def cmd_definition(args: argparse.Namespace) -> int:
    """Print ``file:line:column`` of the module named NAME."""
    index = _open_index(args)
    location = find_definition(index, args.name)
    if location is None:
        sys.exit(f"Error: Module not found: {args.name}")
    print(location)
    return 0


def cmd_hover(args: argparse.Namespace) -> int:
    """Print the Markdown hover summary of the module named NAME."""
    index = _open_index(args)
    text = hover_text(index, args.name)
    if text is None:
        sys.exit(f"Error: Module not found: {args.name}")
    print(text)
    return 0


async def _watch(index: ProjectIndex) -> None:
    count = await index.rescan_all()
    print(f"Indexed {count} module(s); watching {index.root} (Ctrl-C to stop)")
    watcher = ProjectWatcher(index, asyncio.get_running_loop())
    watcher.start()
    try:
        while True:
            await asyncio.sleep(1.0)
    finally:
        watcher.stop()


def cmd_watch(args: argparse.Namespace) -> int:
    """Keep the index of ROOT up to date until interrupted."""
    if not os.path.isdir(args.root):
        sys.exit(f"Error: Directory not found: {args.root}")
    index = ProjectIndex(args.root, _load_config(args, args.root))
    try:
        asyncio.run(_watch(index))
    except KeyboardInterrupt:
        pass
    print(f"Stopped; {len(index)} module(s) indexed")
    return 0


def _add_module_source(subparser: argparse.ArgumentParser) -> None:
    subparser.add_argument(
        "file", metavar="FILE", nargs="?", help="Verilog/SystemVerilog file to parse."
    )
    subparser.add_argument(
        "--module",
        metavar="NAME",
        help="Take module NAME from the project index instead of parsing FILE.",
    )
    subparser.add_argument(
        "--root",
        metavar="ROOT",
        default=".",
        help="Project root searched for --module (default: current directory).",
    )


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="hdlhelper.py",
        description="Index, generate and navigate Verilog/SystemVerilog code.",
    )

    # Global options
    parser.add_argument(
        "--config",
        metavar="YAML",
        help="Configuration file (default: <root>/.hdlhelper.yaml if present).",
    )
    parser.add_argument(
        "--strategy",
        choices=parser_registry.keys(),
        default=None,
        help="Parser strategy (default: from configuration, else fast).",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable debug logging.",
    )

    subparsers = parser.add_subparsers(dest="command")

    # instantiate subcommand
    instantiate = subparsers.add_parser(
        "instantiate",
        help="Print an instantiation template for a module.",
    )
    _add_module_source(instantiate)
    instantiate.add_argument(
        "--comments",
        action="store_true",
        help="Append '// direction type' comments to every port line.",
    )
    instantiate.set_defaults(func=cmd_instantiate)

    # declare subcommand
    declare = subparsers.add_parser(
        "declare",
        help="Declare the signals connected in commented instantiation code.",
    )
    declare.add_argument(
        "file",
        metavar="FILE",
        nargs="?",
        help="File holding instantiation code (default: read stdin).",
    )
    declare.add_argument(
        "--storage",
        choices=["logic", "wire", "reg"],
        default=None,
        help="Storage class of the declarations (default: logic).",
    )
    declare.set_defaults(func=cmd_declare)

    # testbench subcommand
    testbench = subparsers.add_parser(
        "testbench",
        help="Generate a testbench skeleton for a module.",
    )
    _add_module_source(testbench)
    testbench.add_argument(
        "--output-dir",
        metavar="DIR",
        help="Directory for tb_<module>.sv (default: next to FILE).",
    )
    testbench.add_argument(
        "--force",
        action="store_true",
        help="Overwrite an existing testbench file.",
    )
    testbench.add_argument(
        "--stdout",
        action="store_true",
        help="Print the testbench instead of writing a file.",
    )
    testbench.set_defaults(func=cmd_testbench)

    # doc subcommand
    doc = subparsers.add_parser(
        "doc",
        help="Print module documentation.",
    )
    _add_module_source(doc)
    doc.add_argument(
        "--doc-format",
        choices=DOC_FORMATS,
        default="markdown",
        help="Output format (default: markdown).",
    )
    doc.set_defaults(func=cmd_doc)

    # project subcommands
    scan = subparsers.add_parser("scan", help="Index a project and list its modules.")
    scan.add_argument("root", metavar="ROOT", help="Project root directory.")
    scan.set_defaults(func=cmd_scan)

    hierarchy = subparsers.add_parser("hierarchy", help="Print the design hierarchy.")
    hierarchy.add_argument("root", metavar="ROOT", help="Project root directory.")
    hierarchy.add_argument("--top", metavar="MODULE", help="Top module (default: all modules).")
    hierarchy.set_defaults(func=cmd_hierarchy)

    definition = subparsers.add_parser("definition", help="Locate a module definition.")
    definition.add_argument("root", metavar="ROOT", help="Project root directory.")
    definition.add_argument("name", metavar="NAME", help="Module name.")
    definition.set_defaults(func=cmd_definition)

    hover = subparsers.add_parser("hover", help="Summarise a module's interface.")
    hover.add_argument("root", metavar="ROOT", help="Project root directory.")
    hover.add_argument("name", metavar="NAME", help="Module name.")
    hover.set_defaults(func=cmd_hover)

    watch = subparsers.add_parser("watch", help="Keep a project index up to date.")
    watch.add_argument("root", metavar="ROOT", help="Project root directory.")
    watch.set_defaults(func=cmd_watch)

    return parser


def main(argv=None) -> int:
    if argv is None:
        argv = sys.argv[1:]

    parser = build_arg_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if not hasattr(args, "func"):
        parser.print_help()
        return 1

    return args.func(args)


if __name__ == "__main__":
    raise SystemExit(main())
