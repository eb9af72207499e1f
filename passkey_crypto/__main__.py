#!/usr/bin/env python3
#
# Copyright (c) 2022 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""Command-line interface for the passkey_crypto package"""

from typing import Optional, Sequence, TextIO, cast

import os
import sys
import argparse
import json
import logging
import yaml
import colorama # type: ignore[import]
from colorama import Fore, Style
from pygments import highlight, lexers, formatters

# NOTE: this module runs with -m; do not use relative imports
from passkey_crypto import (
    Passkey,
    PasskeyRecord,
    Jsonable,
    PasskeyCryptoError,
    PasskeyCryptoNoPasswordError,
    PasskeyRecordError,
    DecryptionFailed,
    __version__ as pkg_version,
  )
from passkey_crypto.util import decode_b64

logger = logging.getLogger(__name__)

PASSWORD_ENV_VAR = 'PASSKEY_PASSWORD'
RECORD_ENV_VAR = 'PASSKEY_RECORD'
HASH_ITERATIONS_ENV_VAR = 'PASSKEY_HASH_ITERATIONS'
LOG_LEVEL_ENV_VAR = 'PASSKEY_CRYPTO_LOG_LEVEL'

def is_colorizable(stream: TextIO) -> bool:
  is_a_tty = hasattr(stream, 'isatty') and stream.isatty()
  return is_a_tty

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

class CommandHandler:
  _argv: Optional[Sequence[str]]
  _parser: argparse.ArgumentParser
  _args: argparse.Namespace
  _password: Optional[str] = None
  _colorize_stdout: bool = False
  _colorize_stderr: bool = False
  _compact: bool = False
  _raw: bool = False
  _encoding: str = 'utf-8'
  _output_file: Optional[str] = None
  _record: Optional[PasskeyRecord] = None
  _passkey: Optional[Passkey] = None

  def __init__(self, argv: Optional[Sequence[str]]=None):
    self._argv = argv

  def ecolor(self, codes: str) -> str:
    return codes if self._colorize_stderr else ""

  def pretty_print(
        self,
        value: Jsonable,
        compact: Optional[bool]=None,
        raw: Optional[bool]=None,
      ):
    if raw is None:
      raw = self._raw
    if compact is None:
      compact = self._compact

    def emit_to(f: TextIO, colorize: bool):
      if raw and isinstance(value, str):
        f.write(value)
        return
      if compact:
        json_text = json.dumps(value, separators=(',', ':'), sort_keys=True)
      else:
        json_text = json.dumps(value, indent=2, sort_keys=True)
      if colorize:
        json_text = highlight(json_text, lexers.JsonLexer(), formatters.TerminalFormatter())  # pylint: disable=no-member
      else:
        json_text += '\n'
      f.write(json_text)

    if self._output_file is None:
      emit_to(sys.stdout, self._colorize_stdout)
    else:
      with open(self._output_file, "w", encoding=self._encoding) as f:
        emit_to(f, False)

  def write_text(self, text: str) -> None:
    if self._output_file is None:
      sys.stdout.write(text)
    else:
      with open(self._output_file, 'w', encoding=self._encoding) as f:
        f.write(text)

  def read_input(self, value: Optional[str], what: str) -> str:
    args = self._args
    use_stdin: bool = args.use_stdin
    input_file: Optional[str] = args.input_file
    if use_stdin:
      if input_file is None:
        input_file = '/dev/stdin'
      else:
        raise PasskeyCryptoError("Only one of --stdin and --input can be provided")
    if value is None:
      if input_file is None:
        raise PasskeyCryptoError(f"One of {what} parameter, --stdin, or --input must be provided")
      if input_file == '/dev/stdin':
        value = sys.stdin.read()
      else:
        with open(input_file, encoding=self._encoding) as f:
          value = f.read()
    elif not input_file is None:
      raise PasskeyCryptoError(f"Only one of {what} parameter, --stdin, and --input can be provided")
    return value

  def get_password(self) -> str:
    if self._password is None:
      password: str = self._args.password or ''
      if password == '':
        password = os.environ.get(PASSWORD_ENV_VAR, '')
        if password == '':
          raise PasskeyCryptoNoPasswordError(f'A password must be provided with --password or in environment variable {PASSWORD_ENV_VAR}')
      self._password = password
    return self._password

  def get_hash_iterations(self) -> Optional[int]:
    hash_iterations: Optional[int] = self._args.hash_iterations
    if hash_iterations is None:
      env_value = os.environ.get(HASH_ITERATIONS_ENV_VAR, '')
      if env_value != '':
        try:
          hash_iterations = int(env_value)
        except ValueError as e:
          raise PasskeyCryptoError(f"Environment variable {HASH_ITERATIONS_ENV_VAR} is not an integer: '{env_value}'") from e
    return hash_iterations

  def get_record(self) -> PasskeyRecord:
    if self._record is None:
      record_file: Optional[str] = self._args.record_file
      if record_file is None:
        record_file = os.environ.get(RECORD_ENV_VAR, '')
        if record_file == '':
          raise PasskeyRecordError(f"A passkey record file must be provided with --record or in environment variable {RECORD_ENV_VAR}")
      with open(record_file, encoding='utf-8') as f:
        try:
          record_obj = yaml.safe_load(f)
        except yaml.YAMLError as e:
          raise PasskeyRecordError(f"Passkey record file {record_file} is not valid JSON or YAML") from e
      record = PasskeyRecord.from_dict(record_obj)
      record.validate()
      self._record = record
    return self._record

  def get_passkey(self) -> Passkey:
    if self._passkey is None:
      self._passkey = Passkey(self.get_record(), iterations=self.get_hash_iterations())
    return self._passkey

  def cmd_bare(self) -> int:
    print("A command is required", file=sys.stderr)
    return 1

  def cmd_version(self) -> int:
    self.pretty_print(pkg_version)
    return 0

  def cmd_enroll(self) -> int:
    args = self._args
    b64_salt: Optional[str] = args.salt
    b64_iv: Optional[str] = args.iv
    salt: Optional[bytes] = None if b64_salt is None else decode_b64(b64_salt, "salt")
    iv: Optional[bytes] = None if b64_iv is None else decode_b64(b64_iv, "iv")
    passkey = Passkey.create(
        self.get_password(),
        iterations=self.get_hash_iterations(),
        salt=salt,
        iv=iv,
      )
    record = passkey.record
    write_record_file: Optional[str] = args.write_record
    if not write_record_file is None:
      with open(write_record_file, 'w', encoding='utf-8') as f:
        yaml.safe_dump(record.to_dict(), f)
    self.pretty_print(record.to_dict())
    return 0

  def cmd_show_record(self) -> int:
    args = self._args
    record = self.get_record()
    value = record.export() if args.export else record.to_dict()
    self.pretty_print(value)
    return 0

  def cmd_encrypt(self) -> int:
    plaintext = self.read_input(self._args.value, 'value')
    ciphertext = self.get_passkey().encrypt(plaintext)
    self.write_text(ciphertext)
    return 0

  def cmd_decrypt(self) -> int:
    ciphertext = self.read_input(self._args.ciphertext, 'ciphertext').strip()
    plaintext = self.get_passkey().decrypt(ciphertext, self.get_password())
    self.pretty_print(plaintext)
    return 0

  def cmd_verify_password(self) -> int:
    if not self.get_passkey().verify_password(self.get_password()):
      raise DecryptionFailed()
    print(f"{self.ecolor(Fore.GREEN)}Password verified{self.ecolor(Style.RESET_ALL)}", file=sys.stderr)
    return 0

  def run(self) -> int:
    """Run the passkey-crypto command-line tool with provided arguments

    Returns:
        int: The exit code that would be returned if this were run as a standalone command.
    """
    parser = NoExitArgumentParser(description="Passkey envelope encryption: enroll a password, then encrypt and decrypt content.")

    # ======================= Main command

    self._parser = parser
    parser.add_argument('--traceback', "--tb", action='store_true', default=False,
                        help='Display detailed exception information')
    parser.add_argument('-M', '--monochrome', action='store_true', default=False,
                        help='Output to stdout/stderr in monochrome. Default is to colorize if stream is a compatible terminal')
    parser.add_argument('-c', '--compact', action='store_true', default=False,
                        help='Compact instead of pretty-printed output')
    parser.add_argument('-r', '--raw', action='store_true', default=False,
                        help='''Output raw strings directly, not json-encoded.
                                Values embedded in structured results are not affected.''')
    parser.add_argument('-o', '--output', dest="output_file", default=None,
                        help='Write output value to the specified file instead of stdout')
    parser.add_argument('--text-encoding', default='utf-8',
                        help='The encoding used for text. Default  is utf-8')
    parser.add_argument('-p', '--password', default=None,
                        help=f'''The password that protects the private key. By default,
                                environment variable {PASSWORD_ENV_VAR} is used''')
    parser.add_argument('-R', '--record', dest='record_file', default=None,
                        help=f'''A JSON or YAML file containing the passkey record (publicKey, encryptedPrivateKey, salt, iv).
                                By default, the file named in environment variable {RECORD_ENV_VAR} is used''')
    parser.add_argument('--hash-iterations', '-n', type=int, default=None,
                        help=f'''The number of PBKDF2-HMAC-SHA-256 iterations applied to the password/salt to derive the
                                AES-256 key that wraps the private key. Must be at least 65536, which is the default.
                                By default, environment variable {HASH_ITERATIONS_ENV_VAR} is used if set''')
    parser.add_argument('--log-level', default=None,
                        choices=[ 'DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL' ],
                        help=f'''The logging level. By default, environment variable {LOG_LEVEL_ENV_VAR} is used, or
                                WARNING if it is not set''')
    parser.set_defaults(func=self.cmd_bare)

    subparsers = parser.add_subparsers(
                        title='Commands',
                        description='Valid commands',
                        help='Additional help available with "<command-name> -h"')

    # ======================= version

    parser_version = subparsers.add_parser('version',
                            description='''Display version information. JSON-quoted string. If a raw string is desired, use -r.''')
    parser_version.set_defaults(func=self.cmd_version)

    # ======================= enroll

    parser_enroll = subparsers.add_parser('enroll',
                            description='''Generate a new keypair, wrap its private key under the password, and
                                           output the resulting passkey record as JSON''')
    parser_enroll.add_argument('--salt', default=None,
                        help='A base64-encoded salt of at least 16 bytes. By default, 16 random bytes are used.')
    parser_enroll.add_argument('--iv', default=None,
                        help='A base64-encoded 12-byte iv used to wrap the private key. By default, a random iv is used.')
    parser_enroll.add_argument('-w', '--write-record', default=None,
                        help='Also write the new passkey record to the given YAML file')
    parser_enroll.set_defaults(func=self.cmd_enroll)

    # ======================= show-record

    parser_show_record = subparsers.add_parser('show-record', description="Validate and display a passkey record")
    parser_show_record.add_argument('--export', action='store_true', default=False,
                        help='Add an "exportedAt" timestamp, for backups')
    parser_show_record.set_defaults(func=self.cmd_show_record)

    # ======================= encrypt

    parser_encrypt = subparsers.add_parser('encrypt',
                            description="Encrypt a short (at most 190-byte) UTF-8 value under the passkey record's public key")
    parser_encrypt.add_argument('--stdin', dest="use_stdin", action='store_true', default=False,
                        help='Read the value from stdin instead of the commandline')
    parser_encrypt.add_argument('-i', '--input', dest="input_file", default=None,
                        help='Read the value from the specified file instead of the commandline')
    parser_encrypt.add_argument('value',
                        nargs='?',
                        default=None,
                        help="""The value to be encrypted. Omit this parameter if --input or --stdin is provided.""")
    parser_encrypt.set_defaults(func=self.cmd_encrypt)

    # ======================= decrypt

    parser_decrypt = subparsers.add_parser('decrypt',
                            description="Decrypt a value using the password and the passkey record")
    parser_decrypt.add_argument('--stdin', dest="use_stdin", action='store_true', default=False,
                        help='Read the ciphertext from stdin instead of the commandline')
    parser_decrypt.add_argument('-i', '--input', dest="input_file", default=None,
                        help='Read the ciphertext from the specified file instead of the commandline')
    parser_decrypt.add_argument('ciphertext',
                        nargs='?',
                        default=None,
                        help="""The base64 ciphertext to be decrypted. Omit this parameter if --input or --stdin is provided.""")
    parser_decrypt.set_defaults(func=self.cmd_decrypt)

    # ======================= verify-password

    parser_verify_password = subparsers.add_parser('verify-password',
                            description="Exit with 0 if the password unlocks the passkey record, 1 otherwise")
    parser_verify_password.set_defaults(func=self.cmd_verify_password)

    # =========================================================

    try:
      args = parser.parse_args(self._argv)
    except ArgparseExitError as ex:
      return ex.exit_code
    traceback: bool = args.traceback
    try:
      self._args = args
      self._raw = args.raw
      self._compact = args.compact
      self._output_file = args.output_file
      self._encoding = args.text_encoding
      log_level: str = args.log_level or os.environ.get(LOG_LEVEL_ENV_VAR, '') or 'WARNING'
      logging.basicConfig(
          level=log_level.upper(),
          stream=sys.stderr,
          format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
        )
      monochrome: bool = args.monochrome
      if not monochrome:
        self._colorize_stdout = is_colorizable(sys.stdout)
        self._colorize_stderr = is_colorizable(sys.stderr)
        if self._colorize_stdout or self._colorize_stderr:
          colorama.init(wrap=False)
          if self._colorize_stdout:
            new_stream = colorama.AnsiToWin32(sys.stdout)
            if new_stream.should_wrap():
              sys.stdout = cast(TextIO, new_stream)
          if self._colorize_stderr:
            new_stream = colorama.AnsiToWin32(sys.stderr)
            if new_stream.should_wrap():
              sys.stderr = cast(TextIO, new_stream)
      logger.debug("Running command %s", args.func.__name__)
      rc = args.func()
    except Exception as ex:
      if isinstance(ex, CmdExitError):
        rc = ex.exit_code
      else:
        rc = 1
      if rc != 0:
        if traceback:
          raise

        print(f"{self.ecolor(Fore.RED)}passkey-crypto: error: {ex}{self.ecolor(Style.RESET_ALL)}", file=sys.stderr)
    return rc

def run(argv: Optional[Sequence[str]]=None) -> int:
  try:
    rc = CommandHandler(argv).run()
  except CmdExitError as ex:
    rc = ex.exit_code
  return rc

def main() -> None:
  sys.exit(run())

# allow running with "python3 -m", or as a standalone script
if __name__ == "__main__":
  main()
