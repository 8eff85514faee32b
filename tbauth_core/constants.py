# tbauth_core/constants.py

SUBSYSTEM = "thunderbolt"

KEY_BYTES = 32
KEY_CHARS = 64

DEVICES_DIR = "devices"
KEYS_DIR = "keys"

DEVICE_GROUP = "device"
USER_GROUP = "user"

DEFAULT_SYSFS_ROOT = "/sys/bus/thunderbolt/devices"
