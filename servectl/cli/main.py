import argparse
import logging
import os
import sys
from servectl.cli.render import render_command, decode_download_command


def setup_logging():
    log_level = os.getenv('LOG_LEVEL', 'WARNING').upper()
    logging.basicConfig(
        level=getattr(logging, log_level, logging.WARNING),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        stream=sys.stderr
    )


def build_parser():
    parser = argparse.ArgumentParser(description='Compile API specs into Kubernetes workloads')
    subparsers = parser.add_subparsers(dest='command', help='Command to execute')

    # render命令
    render_parser = subparsers.add_parser('render', help='Print the objects compiled from an API spec')
    render_parser.add_argument('-f', '--file', required=True, help='API spec YAML file path')
    render_parser.add_argument('-c', '--cluster-config', help='Cluster config YAML file path')
    render_parser.add_argument('--previous-replicas', type=int,
                               help='Replica count of the currently running deployment')

    # decode-download命令
    decode_parser = subparsers.add_parser('decode-download', help='Decode a downloader argument')
    decode_parser.add_argument('--download', dest='encoded', required=True,
                               help='Encoded manifest, as passed to the downloader container')

    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    setup_logging()

    if args.command == 'render':
        return render_command(args)
    elif args.command == 'decode-download':
        return decode_download_command(args)

    print(f"Unknown command: {args.command}")
    return 1


if __name__ == '__main__':
    sys.exit(main())
