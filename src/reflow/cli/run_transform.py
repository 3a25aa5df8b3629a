"""Core one-shot transform logic.

This module contains the actual runner, separated from argument parsing.
Scripts are thin wrappers; this is the real implementation.
"""

import sys
import json
import argparse
import logging
import importlib.util
from pathlib import Path
from typing import Optional, Dict, Any

from reflow.graph import GraphError
from reflow.pipeline.orchestrator import SessionOrchestrator
from reflow.schemas import resolve_config, ParamConfig, UserConfig, CLIConfig
from reflow.table import UploadRecord, validate_upload


logger = logging.getLogger(__name__)


def load_user_config_dict(config_path: str) -> dict:
    """Load user config dict from Python file.

    Returns the raw dict before Pydantic validation.

    Parameters
    ----------
    config_path : str
        Path to user config Python file containing CONFIG dict.

    Returns
    -------
    dict
        Raw user configuration dictionary.

    Raises
    ------
    FileNotFoundError
        If config file does not exist.
    ValueError
        If no CONFIG dict found in file.
    """
    path = Path(config_path)
    if not path.exists():
        raise FileNotFoundError(f"Config not found: {path}")

    spec = importlib.util.spec_from_file_location("config_module", path)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)

    for name in dir(module):
        if name.startswith('CONFIG'):
            obj = getattr(module, name)
            if isinstance(obj, dict):
                return obj

    raise ValueError(f"No CONFIG dict found in {path}")


def run_transform(
    input_path: str,
    user_config_path: Optional[str] = None,
    cli_args: Optional[Dict[str, Any]] = None,
    output_path: Optional[str] = None,
    verbose: bool = False,
) -> Path:
    """Clean one delimited file and write the result.

    Runs a single session through the same orchestrator a server would
    use:

    1. Loads and resolves configuration (Param < User < CLI)
    2. Opens a session and submits ``input_path`` as its upload
    3. Waits for the processor to parse and clean it
    4. Writes the download bytes to ``output_path`` (default: next to the
       input, named by the download-filename rule)

    Parameters
    ----------
    input_path : str
        Delimited text file to clean.
    user_config_path : str, optional
        Path to user config file (Python file with CONFIG dict).
    cli_args : dict, optional
        CLI overrides. Keys: delimiter, skip_rows, no_header, remove_empty,
        remove_constant, keep_names, base_dir, log_level. All optional.
    output_path : str, optional
        Where to write the cleaned file.
    verbose : bool, optional
        If True, enable DEBUG logging and print full resolved config.

    Returns
    -------
    Path
        The file that was written.

    Raises
    ------
    FileNotFoundError
        If ``input_path`` or ``user_config_path`` does not exist.
    UploadRejected
        If the file breaks the upload rules (size, extension). Checked
        before any session is opened.
    ParseError
        If the file cannot be parsed as a delimited table.

    Examples
    --------
    ::

        run_transform("survey.csv", cli_args={"remove_empty": True})
        run_transform("export.txt", "scripts/user_config.py",
                      cli_args={"delimiter": "tab"}, output_path="clean.csv")
    """
    source = Path(input_path)
    if not source.is_file():
        raise FileNotFoundError(f"Input not found: {source}")

    param_cfg = ParamConfig()
    user_cfg_dict = load_user_config_dict(user_config_path) if user_config_path else {}
    user_cfg = UserConfig.model_validate(user_cfg_dict)

    cli_args = dict(cli_args or {})
    if verbose and "log_level" not in cli_args:
        cli_args["log_level"] = "DEBUG"

    cli_dict = {k: v for k, v in cli_args.items() if v is not None}
    cli_cfg = CLIConfig.model_validate(cli_dict) if cli_dict else CLIConfig()

    config = resolve_config(param_cfg, user_cfg, cli_cfg)
    record = UploadRecord.from_path(source)
    validate_upload(record, config.upload.max_bytes, config.upload.accepted_extensions)

    print(f"\n{'='*60}")
    print("Reflow Table Transform")
    print('='*60)
    print(f"Input:     {source}")
    print(f"Config:    {user_config_path or '(defaults)'}")
    print(f"Delimiter: {config.reader.delimiter!r}")
    print('='*60)

    if verbose:
        print("\nFull Internal Configuration:")
        print(json.dumps(config.model_dump(), indent=2))
        print('='*60)

    orchestrator = SessionOrchestrator(config)
    orchestrator.start()
    try:
        session_id = orchestrator.open_session("cli")
        orchestrator.submit_upload(session_id, record)
        orchestrator.wait(session_id, timeout=config.processor.join_timeout_sec * 12)

        for summary in orchestrator.drain_results(session_id):
            print(f"Parsed {summary['num_rows']} rows; columns: {', '.join(summary['columns'])}")

        artifact = orchestrator.download(session_id)
        target = Path(output_path) if output_path else source.with_name(artifact.filename)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(artifact.data)
    finally:
        orchestrator.stop()

    print(f"Wrote {artifact.size_bytes} bytes to {target}")
    return target


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Clean a delimited table file")
    parser.add_argument("input", help="Delimited text file to clean")
    parser.add_argument("-c", "--config", help="Path to user config file")
    parser.add_argument("-o", "--output", help="Output file (default: <name>_clean.csv beside input)")
    parser.add_argument("-d", "--delimiter", help="comma, tab, semicolon, pipe, auto, or a character")
    parser.add_argument("--skip-rows", type=int, help="Leading lines to skip")
    parser.add_argument("--no-header", action="store_true", default=None, help="First row is data")
    parser.add_argument("--remove-empty", action="store_true", default=None, help="Drop empty columns")
    parser.add_argument("--remove-constant", action="store_true", default=None,
                        help="Drop columns with a single value")
    parser.add_argument("--keep-names", action="store_true", default=None,
                        help="Do not convert column names to snake_case")
    parser.add_argument("--base-dir", help="Working directory for sessions and logs")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    cli_args = {
        "delimiter": args.delimiter,
        "skip_rows": args.skip_rows,
        "no_header": args.no_header,
        "remove_empty": args.remove_empty,
        "remove_constant": args.remove_constant,
        "keep_names": args.keep_names,
        "base_dir": args.base_dir,
    }
    try:
        run_transform(args.input, args.config, cli_args, args.output, verbose=args.verbose)
    except (FileNotFoundError, ValueError, GraphError) as e:
        # ParseError and UploadRejected are ValueErrors; GraphError if nothing was processed
        print(f"Error: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
