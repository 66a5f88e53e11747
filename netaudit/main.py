# netaudit/main.py
"""
netaudit Main Application.
Passive network audit orchestrator.

Usage:
    netaudit --cap_file capture.pcap              # Audit a capture file
    netaudit --instance_dir /data/logs/case1      # Re-parse existing tool logs
    netaudit --conf netaudit.yaml --cap_file x.pcap
    netaudit --help                               # Show help

Exit codes:
    0  success
    1  configuration or validation error
    2  invalid instance directory
    3  no input specified
    4  processing stage failure
"""

import argparse
import sys
from typing import List, Optional

from netaudit import __version__
from netaudit.core.dispatcher import Dispatcher
from netaudit.core.errors import EXIT_OK, NetAuditError
from netaudit.core.instance import InstanceLocator
from netaudit.core.parsers import ParserSelector, PARSER_VOCABULARY
from netaudit.utils.config_loader import ConfigResolver, OUT_DATASETS, RunOptions
from netaudit.utils.logging_utils import AuditLogger, WarningRouter

COMPONENT = 'netaudit.main'


class AuditApplication:
    """
    Main netaudit application class.
    Runs the stages of one audit: locate the instance, select parsers and
    dispatch them to the processing stage.
    """

    def __init__(
        self,
        options: RunOptions,
        logger: Optional[AuditLogger] = None,
        locator: Optional[InstanceLocator] = None,
        selector: Optional[ParserSelector] = None,
        dispatcher: Optional[Dispatcher] = None
    ):
        """
        Initialize netaudit application.

        Args:
            options: Resolved run options
            logger: Audit logger (created from options if None)
            locator: Instance locator
            selector: Parser selector
            dispatcher: Dispatcher wrapping the processing stage
        """
        self.options = options
        self.logger = logger or AuditLogger(
            name='netaudit',
            log_file=options.primary_log_file,
            log_level=options.log_level,
            console_output=True
        )
        self.locator = locator or InstanceLocator()
        self.selector = selector or ParserSelector()
        self.dispatcher = dispatcher or Dispatcher()
        self.instance = None
        self.parsers = None
        self.result = None

    def run(self) -> int:
        """
        Run the audit.

        Returns:
            Process exit code
        """
        self.logger.info(
            COMPONENT,
            f"netaudit {__version__} starting ({self.options.input_mode} mode)",
            options=self.options.to_dict()
        )

        with WarningRouter(self.logger) as router:
            try:
                self.instance = self.locator.locate(self.options)
                self.parsers = self.selector.select(self.options)
                self.result = self.dispatcher.dispatch(
                    self.instance.raw_log_dir,
                    self.parsers,
                    self.instance.json_dir,
                    self.options
                )
            except NetAuditError as e:
                self.logger.error(COMPONENT, str(e), exit_code=e.exit_code)
                return e.exit_code

        if router.external_count:
            self.logger.info(
                COMPONENT,
                f"{router.external_count} external warning(s) recorded in "
                f"{self.logger.external_log_file}"
            )
        if self.instance.name is not None:
            label = f"instance '{self.instance.name}'"
        else:
            label = f"output {self.instance.json_dir}"
        self.logger.info(
            COMPONENT,
            f"Audit complete for {label}",
            instance=self.instance.to_dict(),
            result=self.result
        )
        return EXIT_OK

    def close(self) -> None:
        self.logger.close()


def build_arg_parser() -> argparse.ArgumentParser:
    """Build the command-line parser."""
    parser = argparse.ArgumentParser(
        prog='netaudit',
        description='Passive network audit orchestrator',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=f"""
Parsers:
  {', '.join(PARSER_VOCABULARY)}

Examples:
  netaudit --cap_file office.pcap                 # Audit a capture
  netaudit --cap_file office.pcap --log_dir out   # Flat layout under out/
  netaudit --instance_dir logs/office/            # Re-parse existing logs
  netaudit --cap_file x.pcap --parser bro,snortIds
        """
    )

    parser.add_argument(
        '--debug',
        action='store_true',
        default=None,
        help='Enable debug logging'
    )
    parser.add_argument(
        '--conf',
        type=str,
        default=None,
        help='Path to configuration file (YAML or JSON)'
    )
    parser.add_argument(
        '--version',
        action='version',
        version=f'%(prog)s {__version__}'
    )
    parser.add_argument(
        '--parser',
        dest='parsers',
        type=str,
        default=None,
        metavar='p1[,p2,...]',
        help='Comma-separated parsers to run (default: all but tcpflow)'
    )
    parser.add_argument(
        '--out_dataset',
        type=str,
        default=None,
        choices=OUT_DATASETS,
        help='Output dataset kind'
    )
    parser.add_argument(
        '--home_net',
        type=str,
        default=None,
        metavar='cidr[,cidr...]',
        help='Home network CIDR blocks'
    )
    parser.add_argument(
        '--payload',
        action='store_true',
        default=None,
        help='Decode packet payloads'
    )
    parser.add_argument(
        '--cap_file',
        type=str,
        default=None,
        help='Capture file to audit'
    )
    parser.add_argument(
        '--audit_dict',
        type=str,
        default=None,
        help='Audit dictionary file'
    )
    parser.add_argument(
        '--instance_dir',
        type=str,
        default=None,
        help='Existing raw-log directory of an instance'
    )
    parser.add_argument(
        '--log_dir',
        type=str,
        default=None,
        help='Output/log directory (flat layout when given)'
    )
    parser.add_argument(
        '--log_file',
        type=str,
        default=None,
        help='Primary log file'
    )
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    args = build_arg_parser().parse_args(argv)

    overrides = vars(args).copy()
    config_path = overrides.pop('conf')

    # Console-only logger until the log file location is known
    bootstrap = AuditLogger(
        name='netaudit',
        log_file=None,
        log_level='DEBUG' if overrides.get('debug') else 'INFO',
        console_output=True
    )
    try:
        options = ConfigResolver(overrides, config_path).resolve()
    except NetAuditError as e:
        print(f"[!] {e}", file=sys.stderr)
        return e.exit_code
    finally:
        bootstrap.close()

    app = AuditApplication(options)
    try:
        return app.run()
    finally:
        app.close()


if __name__ == '__main__':
    sys.exit(main())
