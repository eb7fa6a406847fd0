#!

"""AODV config

"""

import io
import argparse
import shlex

from .common import *

configparser = argparse.ArgumentParser (prog = "", add_help = False)
configparser.add_argument ("-h", action = "help", help = argparse.SUPPRESS)
subparser = configparser.add_subparsers ()
cmd_init = set ()
cmd_default = set ()

def config_cmd (name, help, collection = False):
    cp = subparser.add_parser (name, add_help = False)
    cp.add_argument ("-h", action = "help", help = argparse.SUPPRESS)
    cp.set_defaults (collection = collection, attr = name)
    if collection:
        cmd_init.add (name)
    else:
        cmd_default.add (name)
    return cp

def seconds (s):
    v = float (s)
    if v < 0:
        raise ValueError ("Negative time {}".format (s))
    return v

def score (s):
    v = float (s)
    if not 0.0 <= v <= 1.0:
        raise ValueError ("Score {} not in range 0..1".format (s))
    return v

# Each of the config file entries is defined as a subparser, for a command
# name (the entity being configured) and a set of arguments to configure it.

cp = config_cmd ("interface", "Interface configuration", True)
cp.add_argument ("name", help = "Interface name")
cp.add_argument ("--address", type = Ipaddr, required = True,
                 help = "Interface IP address")
cp.add_argument ("--broadcast", type = Ipaddr, default = BROADCAST,
                 help = "Broadcast address (default 255.255.255.255)")

cp = config_cmd ("node", "Overall node configuration")
cp.add_argument ("--energy", type = score, default = 1.0, metavar = "E",
                 help = "Residual energy score (default 1.0)")
cp.add_argument ("--queue-capacity", type = int, default = 0, metavar = "N",
                 help = "Outbound queue capacity for the congestion "
                 "score (default 0, meaning not modeled)")

cp = config_cmd ("logging", "Logging configuration")
cp.add_argument ("--log-config", metavar = "F",
                 help = "Logging config file (JSON or YAML)")
cp.add_argument ("--log-file", metavar = "F",
                 help = "Log file name (default: stderr)")
cp.add_argument ("--log-level", metavar = "L", default = "INFO",
                 choices = ("TRACE", "DEBUG", "INFO", "WARNING", "ERROR",
                            "CRITICAL"),
                 help = "Log level (default: INFO)")

cp = config_cmd ("routing", "Routing layer configuration")
cp.add_argument ("--rreq-retries", type = int, metavar = "N",
                 default = RREQ_RETRIES,
                 help = "Network-wide route request attempts")
cp.add_argument ("--ttl-start", type = int, metavar = "N",
                 default = TTL_START, choices = range (1, 256),
                 help = "TTL of the first route request")
cp.add_argument ("--ttl-increment", type = int, metavar = "N",
                 default = TTL_INCREMENT, choices = range (1, 256),
                 help = "TTL increase per expanding ring retry")
cp.add_argument ("--ttl-threshold", type = int, metavar = "N",
                 default = TTL_THRESHOLD, choices = range (1, 256),
                 help = "Largest expanding ring TTL")
cp.add_argument ("--timeout-buffer", type = int, metavar = "N",
                 default = TIMEOUT_BUFFER,
                 help = "Extra hops allowed for in the reply wait time")
cp.add_argument ("--rreq-rate-limit", type = int, metavar = "N",
                 default = RREQ_RATE_LIMIT,
                 help = "Max route requests per second")
cp.add_argument ("--rerr-rate-limit", type = int, metavar = "N",
                 default = RERR_RATE_LIMIT,
                 help = "Max route errors per second")
cp.add_argument ("--node-traversal-time", type = seconds, metavar = "T",
                 default = NODE_TRAVERSAL_TIME,
                 help = "Per hop traversal time estimate")
cp.add_argument ("--net-diameter", type = int, metavar = "N",
                 default = NET_DIAMETER, choices = range (1, 256),
                 help = "Max hops between two nodes in the network")
cp.add_argument ("--active-route-timeout", type = seconds, metavar = "T",
                 default = ACTIVE_ROUTE_TIMEOUT,
                 help = "Lifetime of a route in use")
cp.add_argument ("--net-traversal-time", type = seconds, metavar = "T",
                 help = "Default: 2 * node traversal time * net diameter")
cp.add_argument ("--path-discovery-time", type = seconds, metavar = "T",
                 help = "Default: 2 * net traversal time")
cp.add_argument ("--my-route-timeout", type = seconds, metavar = "T",
                 help = "Lifetime in replies we originate.  Default: "
                 "2 * max (path discovery time, active route timeout)")
cp.add_argument ("--blacklist-timeout", type = seconds, metavar = "T",
                 help = "Default: route request retries * net traversal time")
cp.add_argument ("--delete-period", type = seconds, metavar = "T",
                 help = "Lifetime of an invalidated route.  Default: "
                 "5 * max (active route timeout, hello interval)")
cp.add_argument ("--next-hop-wait", type = seconds, metavar = "T",
                 help = "Reply ack wait.  Default: node traversal time + 10 ms")
cp.add_argument ("--hello-interval", type = seconds, metavar = "T",
                 default = HELLO_INTERVAL,
                 help = "Interval between hello messages")
cp.add_argument ("--allowed-hello-loss", type = int, metavar = "N",
                 default = ALLOWED_HELLO_LOSS,
                 help = "Hellos that may be missed before the link is "
                 "considered broken")
cp.add_argument ("--max-queue-len", type = int, metavar = "N",
                 default = MAX_QUEUE_LEN,
                 help = "Max packets waiting for a route")
cp.add_argument ("--max-queue-time", type = seconds, metavar = "T",
                 default = MAX_QUEUE_TIME,
                 help = "Max time a packet waits for a route")
cp.add_argument ("--destination-only", action = "store_true", default = False,
                 help = "Request that only the destination replies")
cp.add_argument ("--gratuitous-reply", action = "store_true", default = True,
                 help = "Request gratuitous replies (default)")
cp.add_argument ("--no-gratuitous-reply", action = "store_false",
                 dest = "gratuitous_reply",
                 help = "Don't request gratuitous replies")
cp.add_argument ("--enable-hello", action = "store_true", default = False,
                 help = "Send periodic hello messages")
cp.add_argument ("--no-broadcast", action = "store_false",
                 dest = "enable_broadcast", default = True,
                 help = "Don't forward broadcast data")
cp.add_argument ("--no-fuzzy", action = "store_false",
                 dest = "enable_fuzzy", default = True,
                 help = "Use the static weight table instead of fuzzy "
                 "weights, and don't delay unhealthy forwarding")

def derive (p):
    """Fill in the timeouts that default to values computed from other
    settings.  Returns the argument.
    """
    if p.ttl_threshold < p.ttl_start:
        raise ConfigError ("TTL threshold {} less than TTL start {}",
                           p.ttl_threshold, p.ttl_start)
    if p.net_diameter < p.ttl_threshold:
        raise ConfigError ("Net diameter {} less than TTL threshold {}",
                           p.net_diameter, p.ttl_threshold)
    if p.net_traversal_time is None:
        p.net_traversal_time = 2 * p.node_traversal_time * p.net_diameter
    if p.path_discovery_time is None:
        p.path_discovery_time = 2 * p.net_traversal_time
    if p.my_route_timeout is None:
        p.my_route_timeout = 2 * max (p.path_discovery_time,
                                      p.active_route_timeout)
    if p.blacklist_timeout is None:
        p.blacklist_timeout = p.rreq_retries * p.net_traversal_time
    if p.delete_period is None:
        p.delete_period = 5 * max (p.active_route_timeout, p.hello_interval)
    if p.next_hop_wait is None:
        p.next_hop_wait = p.node_traversal_time + 0.010
    return p

class Config (object):
    """Container for configuration data.
    """
    def __init__ (self, f = None):
        # First supply empty dicts for each collection config component,
        # and defaults for the others.
        for name in cmd_init:
            setattr (self, name, dict ())
        for name in cmd_default:
            setattr (self, name, configparser.parse_args ([ name ]))
        if isinstance (f, str):
            f = io.StringIO (f)
        if f:
            for l in f:
                l = l.rstrip ("\n").strip ()
                if not l or l[0] == "#":
                    continue
                p = configparser.parse_args (shlex.split (l))
                if p.collection:
                    getattr (self, p.attr)[p.name] = p
                else:
                    setattr (self, p.attr, p)
        derive (self.routing)
