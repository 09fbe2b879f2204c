from __future__ import annotations
import argparse, logging, os, sys
from .version import get_version
from .config import load_options
from .eventlog import load_event_log, parse_event_log
from .errors import EventLogError
from .report import render_text, render_json

def _parser()->argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog='tcglog')
    sub = p.add_subparsers(dest='cmd', required=True)

    ps = sub.add_parser('parse', help='parse and verify a TCG event log')
    ps.add_argument('--event-log', help='path to TCG event log (binary_bios_measurements)')
    ps.add_argument('--format', choices=['text','json'], default='text')
    ps.add_argument('--no-event', dest='event', action='store_false', help='omit the decoded event description')
    ps.add_argument('--content', action='store_true', help='hex dump of each event content')
    ps.add_argument('--hex', action='store_true', help='hex dump of each event record without content')
    ps.add_argument('--pcr', type=int, help='only show events for this PCR index')
    ps.add_argument('--config', help='options json')
    ps.add_argument('--output', help='write report to file')
    ps.add_argument('--fail-on-mismatch', action='store_true', help='exit 1 if any event digest does not match its data')
    ps.add_argument('-v', '--verbose', action='store_true')

    sub.add_parser('version', help='print version')
    return p

def _run_parse(args)->int:
    logging.basicConfig(level=logging.INFO if args.verbose else logging.WARNING, format='%(levelname)s: %(message)s')
    opts = load_options(args.config)
    log = parse_event_log(load_event_log(args.event_log), options=opts)
    if args.format == 'json': content = render_json(log, args.pcr)
    else: content = render_text(log, args.event, args.content, args.hex, args.pcr, opts.hex_dump_limit)
    if args.output:
        os.makedirs(os.path.dirname(args.output) or '.', exist_ok=True)
        with open(args.output,'w',encoding='utf-8') as f: f.write(content)
    else:
        print(content)
    if not log.complete: return 1
    if args.fail_on_mismatch and log.mismatches(): return 1
    return 0

def main(argv: list[str] | None = None)->int:
    args = _parser().parse_args(argv)
    try:
        if args.cmd == 'parse':
            return _run_parse(args)
        if args.cmd == 'version':
            print(get_version()); return 0
        return 2
    except EventLogError as e:
        print(f'error: {e}', file=sys.stderr); return 2

if __name__ == '__main__':
    sys.exit(main())
