#!/usr/bin/env python3

# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

from __future__ import annotations

import sys
import argparse
import json
import asyncio
import logging

from tplink_smarthome_protocol.internal_types import *

from tplink_smarthome_protocol import (
    __version__ as pkg_version,
    SmartHomeClientConfig,
    KeyringPasswordConfig,
    SmartHomeDiscoveryRequest,
    NetworkCapability,
    get_local_broadcast_addresses,
    DEFAULT_DISCOVERY_TIMEOUT,
    DEFAULT_KEYRING_SERVICE,
    PROTOCOL_TCP,
  )

class CmdExitError(RuntimeError):
    exit_code: int

    def __init__(self, exit_code: int, msg: Optional[str]=None):
        if msg is None:
            msg = f"Command exited with return code {exit_code}"
        super().__init__(msg)
        self.exit_code = exit_code

class ArgparseExitError(CmdExitError):
    pass

class NoExitArgumentParser(argparse.ArgumentParser):
    def exit(self, status=0, message=None):
        if message:
            self._print_message(message, sys.stderr)
        raise ArgparseExitError(status, message)

def parse_param_assignments(assignments: Sequence[str]) -> JsonableDict:
    """Parses <name>=<value> command parameters. Values are JSON; anything that is
       not valid JSON is taken as a string."""
    params: JsonableDict = {}
    for assignment in assignments:
        if not '=' in assignment:
            raise CmdExitError(1, f"Invalid parameter {assignment!r}; expected <name>=<value>")
        name, value_text = assignment.split('=', 1)
        value: Jsonable
        try:
            value = json.loads(value_text)
        except json.JSONDecodeError:
            value = value_text
        params[name] = value
    return params

class CommandHandler:
    _argv: Optional[Sequence[str]]
    _parser: argparse.ArgumentParser
    _args: argparse.Namespace
    _provide_traceback: bool = True

    def __init__(self, argv: Optional[Sequence[str]]=None):
        self._argv = argv

    async def cmd_bare(self) -> int:
        print("A command is required", file=sys.stderr)
        return 1

    def get_client_config(self) -> SmartHomeClientConfig:
        protocol: Optional[str] = PROTOCOL_TCP if getattr(self._args, 'tcp', False) else None
        return SmartHomeClientConfig.from_env(
            host=self._args.host,
            port=self._args.port,
            protocol=protocol,
            timeout=self._args.timeout,
          )

    async def cmd_discover(self) -> int:
        timeout: Optional[float] = self._args.timeout
        if timeout is None:
            timeout = SmartHomeClientConfig.from_env().discovery_timeout
        targets: List[str] = list(self._args.targets)
        if self._args.all_interfaces:
            targets.extend(get_local_broadcast_addresses(include_loopback=self._args.include_loopback))
        async with SmartHomeDiscoveryRequest(
                targets if len(targets) > 0 else None,
                timeout=timeout,
                port=self._args.port,
                ignore_errors=self._args.ignore_errors,
              ) as discovery_request:
            async for info in discovery_request.iter_responses():
                summary = info.to_json()
                summary["monotonic_time"] = info.monotonic_time
                summary["utc_time"] = info.utc_time.isoformat()
                print(json.dumps(summary, indent=2, sort_keys=True))
                sys.stdout.flush()
        return 0

    async def cmd_exec(self) -> int:
        client = self.get_client_config().create_client()
        params = parse_param_assignments(self._args.params)
        result = await client.execute(self._args.object, self._args.member, params)
        print(json.dumps(result, indent=2, sort_keys=True))
        return 0

    async def cmd_set_wifi(self) -> int:
        ssid: str = self._args.ssid
        password: Optional[str] = self._args.password
        password_config = KeyringPasswordConfig(service=self._args.keyring_service)
        if password is None:
            try:
                password = password_config.get_password(ssid)
            except KeyError as e:
                raise CmdExitError(1, f"No password given for '{ssid}', and none is stored in keyring service '{password_config.service}'") from e
        client = self.get_client_config().create_client()
        await NetworkCapability(client).set_wireless_credentials(ssid, password)
        if self._args.save_password:
            password_config.set_password(ssid, password)
        return 0

    async def cmd_version(self) -> int:
        print(pkg_version)
        return 0

    def add_client_arguments(self, parser: argparse.ArgumentParser) -> None:
        parser.add_argument('--host', default=None,
                            help='''The device hostname or IP address. Default: $TPLINK_SMARTHOME_HOST''')
        parser.add_argument('-p', '--port', type=int, default=None,
                            help='''The device port. Default: $TPLINK_SMARTHOME_PORT, or 9999''')
        parser.add_argument('--tcp', action='store_true', default=False,
                            help='''Use TCP rather than UDP. Default: $TPLINK_SMARTHOME_PROTOCOL, or udp''')
        parser.add_argument('--timeout', type=float, default=None,
                            help='''The transport timeout, in seconds. Default: $TPLINK_SMARTHOME_TIMEOUT, or 5''')

    async def arun(self) -> int:
        """Run the tplink-smarthome command-line tool with provided arguments

        Args:
            argv (Optional[Sequence[str]], optional):
                A list of commandline arguments (NOT including the program as argv[0]!),
                or None to use sys.argv[1:]. Defaults to None.

        Returns:
            int: The exit code that would be returned if this were run as a standalone command.
        """
        parser = NoExitArgumentParser(prog='tplink-smarthome', description="Discover and control TP-Link Smart Home devices.")


        # ======================= Main command

        self._parser = parser
        parser.add_argument('--traceback', "--tb", action='store_true', default=False,
                            help='Display detailed exception information')
        parser.add_argument('--log-level', dest='log_level', default='warning',
                            choices=['debug', 'info', 'warning', 'error', 'critical'],
                            help='''The logging level to use. Default: warning''')
        parser.set_defaults(func=self.cmd_bare)

        subparsers = parser.add_subparsers(
                            title='Commands',
                            description='Valid commands',
                            help='Additional help available with "<command-name> -h"')


        # ======================= discover

        parser_discover = subparsers.add_parser('discover', description="Discover devices on the local network")
        parser_discover.add_argument('--timeout', type=float, default=None,
                            help=f'''The duration of the discovery session, in seconds. Default: $TPLINK_SMARTHOME_DISCOVERY_TIMEOUT, or {DEFAULT_DISCOVERY_TIMEOUT}''')
        parser_discover.add_argument('-t', '--target', dest="targets", action='append', default=[],
                            help='''A broadcast address or CIDR network to send the request to. May be repeated. Default: 255.255.255.255''')
        parser_discover.add_argument('--all-interfaces', dest="all_interfaces", action='store_true', default=False,
                            help='Send the request to the broadcast address of every local IPv4 network')
        parser_discover.add_argument('--include-loopback', dest="include_loopback", action='store_true', default=False,
                            help='With --all-interfaces, include loopback networks')
        parser_discover.add_argument('--ignore-errors', dest="ignore_errors", action='store_true', default=False,
                            help='Skip replies that are malformed or report an error, rather than failing')
        parser_discover.add_argument('-p', '--port', type=int, default=9999,
                            help='The device port. Default: 9999')
        parser_discover.set_defaults(func=self.cmd_discover)

        # ======================= exec

        parser_exec = subparsers.add_parser('exec', description="Execute a command on a device and display the result")
        self.add_client_arguments(parser_exec)
        parser_exec.add_argument('object',
                            help='''The command object, e.g. "system"''')
        parser_exec.add_argument('member',
                            help='''The command member, e.g. "get_sysinfo"''')
        parser_exec.add_argument('params', nargs='*', default=[],
                            help='''A <name>=<json-value> command parameter. May be repeated.''')
        parser_exec.set_defaults(func=self.cmd_exec)

        # ======================= set-wifi

        parser_set_wifi = subparsers.add_parser('set-wifi', description="Join a device to a wireless network")
        self.add_client_arguments(parser_set_wifi)
        parser_set_wifi.add_argument('--ssid', required=True,
                            help='The wireless network name')
        parser_set_wifi.add_argument('--password', default=None,
                            help='The wireless network password. Default: the password stored in the keyring for the SSID')
        parser_set_wifi.add_argument('--keyring-service', dest='keyring_service', default=DEFAULT_KEYRING_SERVICE,
                            help=f'The keyring service that holds wireless passwords. Default: {DEFAULT_KEYRING_SERVICE}')
        parser_set_wifi.add_argument('--save-password', dest='save_password', action='store_true', default=False,
                            help='Store the password in the keyring after the device accepts it')
        parser_set_wifi.set_defaults(func=self.cmd_set_wifi)

        # ======================= version

        parser_version = subparsers.add_parser('version',
                                description='''Display version information.''')
        parser_version.set_defaults(func=self.cmd_version)

        # =========================================================

        try:
            args = parser.parse_args(self._argv)
        except ArgparseExitError as ex:
            return ex.exit_code
        traceback: bool = args.traceback
        self._provide_traceback = traceback

        try:
            logging.basicConfig(
                level=logging.getLevelName(args.log_level.upper()),
            )
            self._args = args
            func: Callable[[], Awaitable[int]] = args.func
            logging.debug(f"Running command {func.__name__}, tb = {traceback}")
            rc = await func()
            logging.debug(f"Command {func.__name__} returned {rc}")
        except Exception as ex:
            if isinstance(ex, CmdExitError):
                rc = ex.exit_code
            else:
                rc = 1
            if rc != 0:
                if traceback:
                    raise
            print(f"tplink-smarthome: error: {ex}", file=sys.stderr)
        except BaseException as ex:
            print(f"tplink-smarthome: Unhandled exception: {ex}", file=sys.stderr)
            raise

        return rc

    def run(self) -> int:
        loop = asyncio.new_event_loop()
        try:
            asyncio.set_event_loop(loop)
            rc = loop.run_until_complete(self.arun())
        finally:
            loop.close()
        return rc

def run(argv: Optional[Sequence[str]]=None) -> int:
    try:
        rc = CommandHandler(argv).run()
    except CmdExitError as ex:
        rc = ex.exit_code
    return rc

async def arun(argv: Optional[Sequence[str]]=None) -> int:
    try:
        rc = await CommandHandler(argv).arun()
    except CmdExitError as ex:
        rc = ex.exit_code
    return rc

# allow running with "python3 -m", or as a standalone script
if __name__ == "__main__":
    sys.exit(run())
