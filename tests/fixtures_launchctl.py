"""
Captured ``launchctl`` output across macOS releases (10.14 → 15).

Each constant is one variant the parsers must accept.
"""

# ── launchctl list ──────────────────────────────────────────────

LIST_STANDARD = """\
PID\tStatus\tLabel
-\t0\tcom.apple.syslogd
1234\t0\tcom.example.running
-\t78\tcom.example.error
-\t-\tcom.example.disabled
56789\t0\tcom.apple.mDNSResponder
"""

LIST_EXTRA_WHITESPACE = """\
PID\t\tStatus\t\tLabel
  -  \t  0  \t  com.apple.syslogd
  1234  \t  0  \t  com.example.running
"""

LIST_SPACE_SEPARATED = """\
PID     Status  Label
-       0       com.apple.syslogd
1234    0       com.example.running
-       78      com.example.error
"""

LIST_MIXED_SEPARATORS = """\
PID\tStatus\tLabel
-\t0\tcom.apple.syslogd
1234    0       com.example.running
-\t78\tcom.example.error
"""

LIST_NO_HEADER = """\
-\t0\tcom.apple.syslogd
1234\t0\tcom.example.running
-\t78\tcom.example.error
"""

LIST_HEADER_ONLY = "PID\tStatus\tLabel\n"

LIST_WITH_ERROR = """\
PID\tStatus\tLabel
Could not contact daemon.
-\t0\tcom.apple.syslogd
1234\t0\tcom.example.running
"""

LIST_LARGE_PIDS = """\
PID\tStatus\tLabel
99999\t0\tcom.example.large
1234567\t0\tcom.example.verylarge
-\t-1\tcom.example.negative
"""

LIST_UNUSUAL_LABELS = """\
PID\tStatus\tLabel
-\t0\tcom.example.with-dash
-\t0\tcom.example.with_underscore
-\t0\tcom.example.with.many.dots
-\t0\t0com.starts.with.number
"""

LIST_CATALINA = """\
PID\tStatus\tLabel
-\t0\tcom.apple.cloudpaird
145\t0\tcom.apple.Spotlight
-\t0\tcom.apple.imfoundation.IMRemoteURLConnectionAgent
"""

# Trailing path column
LIST_SEQUOIA = """\
PID\tStatus\tLabel\tPath
-\t0\tcom.apple.syslogd\t/System/Library/LaunchDaemons/com.apple.syslogd.plist
1234\t0\tcom.example.running\t/Library/LaunchDaemons/com.example.running.plist
"""

LIST_UNSAFE_LABELS = """\
PID\tStatus\tLabel
-\t0\tcom.example.good
-\t0\tcom.example;rm -rf
-\t0\tcom.example.$(whoami)
"""

# ── launchctl print ─────────────────────────────────────────────

PRINT_MODERN = """\
com.example.myservice = {
\tpath = /Library/LaunchDaemons/com.example.myservice.plist
\tstate = running
\tprogram = /usr/local/bin/myservice
\tpid = 1234
\tlast exit code = 0
\tspawn type = daemon
\tondemand = false
\tactive count = 1
\truns = 5
}
"""

PRINT_VENTURA = """\
com.apple.sharingd = {
\tpath = /System/Library/LaunchAgents/com.apple.sharingd.plist
\tstate = running
\tprogram = /usr/libexec/sharingd
\targuments = {
\t\t/usr/libexec/sharingd
\t}
\tpid = 456
\tlast exit code = 0
\tenabled = true
\trun state = running
\tpriority = 50
\tprocesstype = Background
}
"""

PRINT_CATALINA = """\
com.example.service = {
\tpath = /Library/LaunchDaemons/com.example.service.plist
\tstatus = 0
\tPID = 789
\tprogram = /usr/bin/service
\tenabled = 1
\tlastExitStatus = 0
}
"""

PRINT_BIG_SUR = """\
com.example.bigsur = {
\tpath = /Library/LaunchDaemons/com.example.bigsur.plist
\tstate = running
\tpid = 321
\tprogram = /usr/bin/bigsur
\tlast exit status = 0
\tenabled = true
}
"""

PRINT_LEGACY = """\
"Label" = "com.example.legacy";
"Program" = "/usr/bin/legacy";
"PID" = 555;
"LastExitStatus" = 0;
"OnDemand" = true;
"""

PRINT_NESTED = """\
com.apple.complex = {
\tpath = /System/Library/LaunchDaemons/com.apple.complex.plist
\tstate = running
\tpid = 111
\tprogram = /usr/libexec/complex
\tenvironment = {
\t\tPATH = /usr/bin:/bin
\t\tHOME = /var/root
\t}
\tmach ports = {
\t\tcom.apple.complex.port = 0x1234
\t}
\tendpoints = {
\t\tcom.apple.complex.xpc = {
\t\t\tactive = 1
\t\t}
\t}
}
"""

PRINT_NOT_FOUND = 'Could not find service "com.example.notfound" in domain for system\n'

PRINT_PARTIAL_ERROR = """\
Warning: Reading from launchd may take a while.
com.example.partial = {
\tpath = /Library/LaunchDaemons/com.example.partial.plist
\tstate = running
}
"""

PRINT_SEQUOIA = """\
service: com.example.sequoia
path: /Library/LaunchDaemons/com.example.sequoia.plist
state: running
pid: 9999
program: /usr/local/bin/sequoia
last-exit-code: 0
enabled: true
type: daemon
process-type: background
"""

PRINT_HEX_VALUES = """\
com.example.hex = {
\tpath = /Library/LaunchDaemons/com.example.hex.plist
\tstate = running
\tpid = 0x1a2b
\tlast exit code = 0x0
\tmach port = 0xdeadbeef
}
"""

PRINT_DUPLICATE_KEYS = """\
com.example.dupe = {
\tstate = running
\tstate = waiting
\tpid = 42
}
"""

# ── systemextensionsctl list ────────────────────────────────────

EXTENSIONS_DUPLICATE_BUNDLE = """\
2 extension(s)
--- com.apple.system_extension.network_extension
enabled\tactive\tteamID\tbundleID (version)\tname\t[state]
*\t\tABCDE12345\tcom.example.filter (1.0/1)\tFilter\t[activated waiting for user]
--- com.apple.system_extension.endpoint_security
enabled\tactive\tteamID\tbundleID (version)\tname\t[state]
*\t*\tABCDE12345\tcom.example.filter (1.0/1)\tFilter\t[activated enabled]
"""
