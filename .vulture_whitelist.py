from pgcrtauth.ca.keys import KeySize
from pgcrtauth.ca.template import CertificateDescriptor
from pgcrtauth.cli import (
    generate_command,
    init_command,
    inspect_command,
    version_command,
)
from pgcrtauth.services.issuance import CertificateInfo, IssuedPair
from shared.config import Settings

# Pydantic Settings
Settings.model_config
Settings.LOG_LEVEL
Settings.TELEMETRY_CONSOLE

# Typer commands (registered through decorators)
init_command
generate_command
inspect_command
version_command

# Key size tokens only referenced by value
KeySize.P224
KeySize.P384
KeySize.P521
KeySize.RSA_1024
KeySize.RSA_2048
KeySize.RSA_4096

# Result objects read by callers and the CLI
IssuedPair.not_before
IssuedPair.algorithm
CertificateInfo.path
CertificateDescriptor.extended_key_usage
