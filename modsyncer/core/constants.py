"""
Shared constants for Minecraft Mod Syncer.
"""

APP_DIR_NAME = "minecraft-mod-syncer"

# Only these files in the mods folder are considered mods
MOD_EXTENSION = ".jar"

# Prefix for in-flight downloads; renamed to the final name once complete
TEMP_PREFIX = "_download_"

# Transfer tuning
MAX_WORKERS = 4
MAX_ATTEMPTS = 3
RETRY_BACKOFF = 0.5  # seconds, multiplied by the attempt number
CHUNK_SIZE = 64 * 1024
CONNECT_TIMEOUT = 10
READ_TIMEOUT = 120

# Download the bundle even if it's up to 5% bigger than the individual files
BUNDLE_SIZE_THRESHOLD = 0.95

# Entry scopes the client cares about
CLIENT_SCOPES = {"both", "client"}
