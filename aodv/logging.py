#!

"""Logging extensions for AODV/Python.

"""

import logging
import logging.config
import sys
import copy
import json
import functools

try:
    from yaml import load, Loader
except ImportError:
    load = None

from .common import *

# Additional level
TRACE = 2

# Inherit some names from the standard logging module
CRITICAL = logging.CRITICAL
ERROR = logging.ERROR
WARNING = logging.WARNING
INFO = logging.INFO
DEBUG = logging.DEBUG

# Other modules call these through "logging.debug" and so on.  Until
# start () runs they are the standard module functions; after that
# they are methods of the "aodv" logger.
critical = logging.critical
error = logging.error
warning = logging.warning
info = logging.info
debug = logging.debug
exception = logging.exception
trace = functools.partial (logging.log, TRACE)
log = logging.log

tracing = False

stdlog =  {
    "version": 1,
    "formatters": {
        "aodvformatter": {
            "()": "aodv.logging.AodvFormatter",
            "format": "{asctime}: {message}",
            "style": "{"
            }
        },
    "handlers": {
        "aodvhandler": {
            "class": "logging.StreamHandler",
            "formatter": "aodvformatter"
            }
        },
    "root": {
        "handlers": [ "aodvhandler" ],
        "level": "INFO"
        },
    "loggers" : {
        "aodv": {
            "propagate" : True
            }
        }
    }

class AodvFormatter (logging.Formatter):
    default_msec_format = "%s.%03d"

# Messages use "{}" placeholders, so the record formats them with
# str.format rather than the % operator.
class AodvLogRecord (logging.LogRecord):
    def getMessage (self):
        return str (self.msg).format (*self.args)

logging.setLogRecordFactory (AodvLogRecord)

logging.addLevelName (TRACE, "TRACE")

def start (p = None):
    """Start logging using the supplied config, which is the parsed
    "logging" line of the configuration file (or None for defaults).
    """
    global logconfig
    log_config = getattr (p, "log_config", None)
    if log_config:
        fn = log_config
        with open (fn, "rt") as f:
            lc = f.read ()
        if fn.endswith (".yaml"):
            if not load:
                print ("YAML config file but no YAML support",
                       file = sys.stderr)
                sys.exit (1)
            logconfig = load (lc, Loader = Loader)
        else:
            logconfig = json.loads (lc)
        if "loggers" not in logconfig:
            logconfig["loggers"] = copy.deepcopy (stdlog["loggers"])
        if "aodv" not in logconfig["loggers"]:
            logconfig["loggers"]["aodv"] = dict (stdlog["loggers"]["aodv"])
    else:
        logconfig = copy.deepcopy (stdlog)
        h = logconfig["handlers"]["aodvhandler"]
        rl = logconfig["root"]
        log_file = getattr (p, "log_file", None)
        if log_file:
            h["filename"] = log_file
            h["class"] = "logging.FileHandler"
            h["mode"] = "a"
        rl["level"] = getattr (p, "log_level", None) or "INFO"
    logging.config.dictConfig (logconfig)
    setaodvlogger ()

def setaodvlogger ():
    # Everything logs through the "aodv" logger.  It propagates to the
    # root logger unless a log config file sets it up differently.
    global aodvLogger, tracing
    global critical, error, warning, info, debug, trace, exception
    aodvLogger = logging.getLogger ("aodv")
    # Per-packet trace calls check "tracing" first.
    tracing = aodvLogger.isEnabledFor (TRACE)
    critical = aodvLogger.critical
    error = aodvLogger.error
    warning = aodvLogger.warning
    info = aodvLogger.info
    debug = aodvLogger.debug
    exception = aodvLogger.exception
    # A partial of the "log" method, so the record shows the real caller.
    trace = functools.partial (aodvLogger.log, TRACE)

def stop ():
    debug ("AODV/Python logging stopped")
    logging.shutdown ()
