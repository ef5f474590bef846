"""Project-wide default values for pia-wg-connect.

These constants capture the baseline connection settings used when the
environment or the command line does not override them. Keeping them
centralized makes it easier to audit and adjust defaults.
"""

DEFAULT_CONF_DIR = "/etc/wireguard"
DEFAULT_INTERFACE = "pia"

DEFAULT_API_PORT = 1337
DEFAULT_API_TIMEOUT = 15
DEFAULT_CA_CERT = "ca.rsa.4096.crt"

# Keeps NAT mappings alive on firewalls between the host and the server.
DEFAULT_KEEPALIVE_SECONDS = 25
DEFAULT_ALLOWED_IPS = "0.0.0.0/0"

DEFAULT_PF_SCRIPT = "./port_forwarding.sh"
DEFAULT_PF_COUNTDOWN = 5

REQUIRED_TOOLS = ("wg-quick", "wg")

SUBPROCESS_TEXT_KWARGS = {"text": True, "encoding": "utf-8", "errors": "replace"}
