#!/usr/bin/env python3

import argparse
import logging
import signal
import sys
import time

from .config import Settings
from .errors import ClusterProcessError
from .mysqlctl_process import mysqlctl_process_instance
from .utils import GracefulKiller
from .vttablet_process import vttablet_process_instance


def set_logging_config(tags, log_level_str=None):
    """Configure logging to output only to stderr."""
    handlers = [logging.StreamHandler(sys.stderr)]

    log_levels = {
        'critical': logging.CRITICAL,
        'error': logging.ERROR,
        'warning': logging.WARNING,
        'info': logging.INFO,
        'debug': logging.DEBUG,
    }

    log_level = log_levels.get(log_level_str)
    if log_level is None:
        logging.warning(f'Unknown log level {log_level_str}, setting info')
        log_level = logging.INFO

    logging.basicConfig(
        level=log_level,
        format=f'[{tags} %(asctime)s %(levelname)8s] %(message)s',
        handlers=handlers,
    )


def make_vttablet(args, config: Settings):
    return vttablet_process_instance(
        port=args.port,
        grpc_port=args.grpc_port,
        tablet_uid=args.tablet_uid,
        cell=args.cell,
        shard=args.shard,
        keyspace=args.keyspace,
        vtctld_port=args.vtctld_port,
        tablet_type=args.tablet_type,
        topo_port=config.topo.port,
        hostname=config.hostname,
        tmp_directory=args.tmp_dir,
        extra_args=args.extra_args,
        settings=config,
    )


def make_mysqlctl(args, config: Settings):
    return mysqlctl_process_instance(
        tablet_uid=args.tablet_uid,
        mysql_port=args.mysql_port,
        tmp_directory=args.tmp_dir,
        settings=config,
    )


def run_vttablet(args, config: Settings):
    set_logging_config(f'vttablet {args.tablet_uid}', log_level_str=config.log_level)
    vttablet = make_vttablet(args, config)
    # SIGTERM interrupts the readiness wait the same way SIGINT does
    signal.signal(signal.SIGTERM, signal.default_int_handler)
    try:
        vttablet.setup(args.target_state)
        killer = GracefulKiller()
        logging.info(f'vttablet {vttablet.tablet_path} is up, waiting for SIGINT / SIGTERM')
        while not killer.kill_now and vttablet.is_running():
            time.sleep(0.3)
    finally:
        returncode = vttablet.tear_down()
        logging.info(f'vttablet {vttablet.tablet_path} stopped (exit code: {returncode})')


def run_tablet_status(args, config: Settings):
    set_logging_config('status', log_level_str=config.log_level)
    vttablet = make_vttablet(args, config)
    print(vttablet.get_tablet_status())


def run_mysqlctl_init(args, config: Settings):
    set_logging_config(f'mysqlctl {args.tablet_uid}', log_level_str=config.log_level)
    make_mysqlctl(args, config).init_db()


def run_mysqlctl_start(args, config: Settings):
    set_logging_config(f'mysqlctl {args.tablet_uid}', log_level_str=config.log_level)
    make_mysqlctl(args, config).start()


def run_mysqlctl_stop(args, config: Settings):
    set_logging_config(f'mysqlctl {args.tablet_uid}', log_level_str=config.log_level)
    make_mysqlctl(args, config).stop()


MODES = {
    'vttablet': run_vttablet,
    'tablet_status': run_tablet_status,
    'mysqlctl_init': run_mysqlctl_init,
    'mysqlctl_start': run_mysqlctl_start,
    'mysqlctl_stop': run_mysqlctl_stop,
}


def build_parser():
    parser = argparse.ArgumentParser()
    parser.add_argument("mode", help="run mode", type=str, choices=list(MODES))
    parser.add_argument("--config", help="config file path", default=None, type=str)
    parser.add_argument("--tablet_uid", type=int, default=100)
    parser.add_argument("--port", help="vttablet http port", type=int, default=15100)
    parser.add_argument("--grpc_port", help="vttablet grpc port", type=int, default=16100)
    parser.add_argument("--mysql_port", type=int, default=17100)
    parser.add_argument("--vtctld_port", type=int, default=15000)
    parser.add_argument("--cell", type=str, default="zone1")
    parser.add_argument("--shard", type=str, default="0")
    parser.add_argument("--keyspace", type=str, default="ks")
    parser.add_argument("--tablet_type", type=str, default="replica", choices=["replica", "rdonly"])
    parser.add_argument("--tmp_dir", help="log directory", type=str, default="/tmp")
    parser.add_argument(
        "--target_state", type=str, default=None,
        help="TabletStateName to wait for, defaults to vttablet.serving_state from config",
    )
    parser.epilog = "extra vttablet flags go after --"
    return parser


def split_extra_args(argv):
    """Split ``argv`` at the first ``--``; everything after it is passed to vttablet."""
    if '--' not in argv:
        return list(argv), []
    separator = argv.index('--')
    return list(argv[:separator]), list(argv[separator + 1:])


def main(argv=None):
    if argv is None:
        argv = sys.argv[1:]
    argv, extra_args = split_extra_args(argv)
    args = build_parser().parse_args(argv)
    args.extra_args = extra_args

    config = Settings()
    if args.config:
        config.load(args.config)

    try:
        MODES[args.mode](args, config)
    except ClusterProcessError as e:
        logging.error(str(e))
        sys.exit(1)
    except KeyboardInterrupt:
        logging.info(f'{args.mode} interrupted')
        sys.exit(130)


if __name__ == '__main__':
    main()
