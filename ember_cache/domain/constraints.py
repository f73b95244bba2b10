MAX_KEY_LENGTH = 256
MIN_CLEANUP_INTERVAL = 1
