import argparse
import getpass
import logging
import os
import sys
from pathlib import Path
from typing import Callable, List, Optional, TypeVar

from pydantic import SecretStr, ValidationError

from keyforge import init_logging
from keyforge.client.config.client_config_map import ClientConfigMap
from keyforge.client.config.config_helpers import load_client_config_map_from_file
from keyforge.core.data_type.common import KeyAlgorithm, KeyFormat, PrivateKeyCipher
from keyforge.core.data_type.key_requests import KeyConversionRequest, KeyGenerationRequest, KeyImportRequest
from keyforge.core.key_forge_service import KeyForgeService
from keyforge.exceptions import KeyForgeBaseException, PassphraseRequired

T = TypeVar("T")

PRIVATE_KEY_FILE_MODE = 0o600


class CmdlineParser(argparse.ArgumentParser):
    def __init__(self):
        super().__init__(prog="keyforge", description="Generate, import and convert SSH private keys.")
        self.add_argument("--config-file", "-f",
                          type=str,
                          required=False,
                          help="Client configuration file (defaults to conf/conf_client.yml).")
        self.add_argument("--log-level",
                          type=str,
                          required=False,
                          help="Override the log level of the keyforge loggers.")
        subparsers = self.add_subparsers(dest="command", required=True)

        generate = subparsers.add_parser("generate", help="Generate a new key pair.")
        generate.add_argument("--algorithm", "-t",
                              choices=[algorithm.value for algorithm in KeyAlgorithm],
                              help="Key algorithm (defaults to the configured algorithm).")
        generate.add_argument("--bits", "-b", type=int, help="RSA key size in bits.")
        generate.add_argument("--format", dest="key_format",
                              choices=[key_format.value for key_format in KeyFormat],
                              help="Private key output format.")
        generate.add_argument("--cipher",
                              choices=[PrivateKeyCipher.AES256_CTR.value, PrivateKeyCipher.CHACHA20_POLY1305.value],
                              help="Cipher for passphrase-protected OpenSSH output.")
        generate.add_argument("--comment", "-C", type=str, help="Key comment.")
        generate.add_argument("--label", type=str, help="Display label.")
        self._add_passphrase_arguments(generate, "Passphrase protecting the new private key.")
        self._add_output_argument(generate)

        import_key = subparsers.add_parser("import", help="Inspect a private key or an OpenSSH public key.")
        import_key.add_argument("key_file", help="Key file, or - for stdin.")
        import_key.add_argument("--comment", "-C", type=str, help="Key comment.")
        import_key.add_argument("--label", type=str, help="Display label.")
        self._add_passphrase_arguments(import_key, "Passphrase of the private key.")

        convert = subparsers.add_parser("convert", help="Re-encode a private key in another format.")
        convert.add_argument("key_file", help="Private key file, or - for stdin.")
        convert.add_argument("--format", dest="key_format",
                             choices=[key_format.value for key_format in KeyFormat],
                             help="Private key output format.")
        convert.add_argument("--cipher",
                             choices=[PrivateKeyCipher.AES256_CTR.value, PrivateKeyCipher.CHACHA20_POLY1305.value],
                             help="Cipher for passphrase-protected OpenSSH output.")
        convert.add_argument("--new-passphrase", type=str, help="Passphrase protecting the converted private key.")
        convert.add_argument("--comment", "-C", type=str, help="Key comment.")
        self._add_passphrase_arguments(convert, "Current passphrase of the private key.")
        self._add_output_argument(convert)

        detect = subparsers.add_parser("detect", help="Report a private key's format and cipher.")
        detect.add_argument("key_file", help="Private key file, or - for stdin.")

    @staticmethod
    def _add_passphrase_arguments(parser: argparse.ArgumentParser, help_text: str):
        parser.add_argument("--passphrase", "-p", type=str, help=help_text)
        parser.add_argument("--ask-passphrase",
                            action="store_true",
                            help="Prompt for the passphrase instead of passing it on the command line.")

    @staticmethod
    def _add_output_argument(parser: argparse.ArgumentParser):
        parser.add_argument("--output", "-o",
                            type=str,
                            help="Write the private key here and the public key to <output>.pub.")


def _secret(value: Optional[str]) -> Optional[SecretStr]:
    return SecretStr(value) if value else None


def read_key_text(key_file: str) -> str:
    if key_file == "-":
        return sys.stdin.read()
    return Path(key_file).read_text()


def write_key_files(output: Optional[str], private_key: str, public_key: str):
    if output is None:
        sys.stdout.write(private_key if private_key.endswith("\n") else private_key + "\n")
        print(public_key)
        return
    fd = os.open(output, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, PRIVATE_KEY_FILE_MODE)
    with os.fdopen(fd, "w") as private_file:
        private_file.write(private_key)
    Path(f"{output}.pub").write_text(public_key + "\n")
    print(f"Private key written to {output}, public key to {output}.pub")


def prompt_passphrase(prompt: str = "Passphrase: ") -> str:
    return getpass.getpass(prompt)


def with_passphrase_retry(args: argparse.Namespace, operation: Callable[[Optional[str]], T]) -> T:
    """
    Runs `operation` with the supplied passphrase and, when the key turns out to be encrypted and we are attached
    to a terminal, prompts once and retries.
    """
    passphrase = prompt_passphrase() if args.ask_passphrase else args.passphrase
    try:
        return operation(passphrase)
    except PassphraseRequired:
        if passphrase or not sys.stdin.isatty():
            raise
        return operation(prompt_passphrase("This private key is encrypted. Passphrase: "))


def generate_command(service: KeyForgeService, cm: ClientConfigMap, args: argparse.Namespace):
    passphrase = prompt_passphrase("New passphrase: ") if args.ask_passphrase else args.passphrase
    request = KeyGenerationRequest(
        label=args.label,
        algorithm=KeyAlgorithm(args.algorithm) if args.algorithm else cm.default_key_algorithm,
        rsa_key_size=args.bits or cm.default_rsa_key_size,
        comment=args.comment,
        private_key_format=KeyFormat(args.key_format) if args.key_format else cm.default_private_key_format,
        cipher=PrivateKeyCipher(args.cipher) if args.cipher else cm.default_private_key_cipher,
        passphrase=_secret(passphrase),
    )
    generated = service.generate_key(request)
    write_key_files(args.output, generated.private_key.get_secret_value(), generated.public_key)
    print(f"{generated.label}: {generated.sha256_fingerprint}", file=sys.stderr)


def import_command(service: KeyForgeService, args: argparse.Namespace):
    key_text = read_key_text(args.key_file)
    imported = with_passphrase_retry(args, lambda passphrase: service.import_key(KeyImportRequest(
        key_text=SecretStr(key_text),
        passphrase=_secret(passphrase),
        label=args.label,
        comment=args.comment,
    )))
    print(f"Label:       {imported.label}")
    print(f"Type:        {imported.key_type} ({imported.bit_length} bits)")
    if imported.has_private_key:
        print(f"Format:      {imported.private_key_format}")
        print(f"Encrypted:   {'yes (' + str(imported.cipher) + ')' if imported.passphrase_protected else 'no'}")
    print(f"SHA256:      {imported.sha256_fingerprint}")
    print(f"MD5:         {imported.md5_fingerprint}")
    print(imported.public_key)


def convert_command(service: KeyForgeService, cm: ClientConfigMap, args: argparse.Namespace):
    key_text = read_key_text(args.key_file)
    converted = with_passphrase_retry(args, lambda passphrase: service.convert_private_key(KeyConversionRequest(
        private_key=SecretStr(key_text),
        current_passphrase=_secret(passphrase),
        output_format=KeyFormat(args.key_format) if args.key_format else cm.default_private_key_format,
        output_passphrase=_secret(args.new_passphrase),
        output_cipher=PrivateKeyCipher(args.cipher) if args.cipher else cm.default_private_key_cipher,
        comment=args.comment,
    )))
    write_key_files(args.output, converted.private_key.get_secret_value(), converted.public_key)


def detect_command(service: KeyForgeService, args: argparse.Namespace):
    detection = service.detect_key(read_key_text(args.key_file))
    print(f"Format:              {detection.key_format}")
    print(f"Cipher:              {detection.cipher_name or detection.cipher}")
    print(f"Passphrase required: {'yes' if detection.passphrase_required else 'no'}")


def main(argv: Optional[List[str]] = None) -> int:
    args = CmdlineParser().parse_args(argv)
    try:
        client_config_map = load_client_config_map_from_file(args.config_file)
    except ValidationError as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        return 1
    init_logging("keyforge_logs.yml", override_log_level=args.log_level or client_config_map.log_level)

    service = KeyForgeService()
    try:
        if args.command == "generate":
            generate_command(service, client_config_map, args)
        elif args.command == "import":
            import_command(service, args)
        elif args.command == "convert":
            convert_command(service, client_config_map, args)
        elif args.command == "detect":
            detect_command(service, args)
    except KeyForgeBaseException as e:
        logging.getLogger(__name__).debug(f"{args.command} failed ({e.kind}).")
        print(f"Error: {e.message}", file=sys.stderr)
        return 1
    except OSError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    return 0
