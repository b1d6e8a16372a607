"""
Constants for the imagecheck probe.
"""

# Seconds to let a freshly started container settle before the first inspection
SETTLE_SECONDS = 5

# Seconds a container gets to exit after receiving the stop signal
STOP_TIMEOUT = 5

# Seconds the timeout guard waits for a cancelled operation to wind down
CANCEL_GRACE_SECONDS = 1.0

# How often a blocking runtime call checks its cancel token
CANCEL_POLL_INTERVAL = 0.1

# Signal sent for a graceful stop
DEFAULT_STOP_SIGNAL = "TERM"

# Default arguments appended to the run call
DEFAULT_RUN_ARGS = "-d"

# Runtime binaries tried, in order, when none is configured
RUNTIME_CANDIDATES = ("docker", "podman")

# Environment variable naming the runtime binary
RUNTIME_ENV_VAR = "IMAGECHECK_RUNTIME"

# Inspect format producing "<running> <exit code>"
STATE_FORMAT = "{{.State.Running}} {{.State.ExitCode}}"

# Substituted when the real exit status of a runtime call is unknown
UNKNOWN_EXIT_CODE = 127

# Process exit statuses
EXIT_OK = 0
EXIT_FATAL = 1
EXIT_PROBE_FAILED = 2
