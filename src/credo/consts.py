VERSION = "0.3.0"
APP_NAME = "credo"
