#!

"""Common things that don't depend on other aodv modules.

"""

import re
import socket
import abc
import collections

# Well known port and message type codes
AODV_PORT = 654

RREQ = 1
RREP = 2
RERR = 3
RREP_ACK = 4

# Protocol defaults.  The times are in seconds.
RREQ_RETRIES = 2
TTL_START = 1
TTL_INCREMENT = 2
TTL_THRESHOLD = 7
TIMEOUT_BUFFER = 2
RREQ_RATE_LIMIT = 10
RERR_RATE_LIMIT = 10
ACTIVE_ROUTE_TIMEOUT = 3.0
NET_DIAMETER = 35
NODE_TRAVERSAL_TIME = 0.04
HELLO_INTERVAL = 1.0
ALLOWED_HELLO_LOSS = 2
MAX_QUEUE_LEN = 64
MAX_QUEUE_TIME = 30.0

# EOCW constants
ENERGY_CRITICAL = 0.20     # Below this a node won't relay route requests
COLLECT_WINDOW = 0.020     # Candidate path collection time at destination
INFINITE = float ("inf")

NE = "big"                 # Network byte order

# Exceptions
class AodvException (Exception):
    def __str__ (self):
        if self.args:
            text, *args = self.args
            return text.format (*args)
        return self.__doc__

class ConfigError (AodvException):
    """Invalid configuration"""

# Exceptions related to packet encode/decode
class DecodeError (AodvException):
    """Packet decode error"""
class WrongValue (DecodeError):
    """Constant field in packet with wrong value"""
class ExtraData (DecodeError):
    """Unexpected data at end of packet"""
class MissingData (DecodeError):
    """Unexpected end of packet in decode"""
class FieldOverflow (DecodeError):
    """Value too large for field size"""

# Result tokens.  All Failure instances test False, so "if retval:"
# still works as the check for success, but callers that care can
# tell the reasons apart.
class Failure:
    def __init__ (self, name):
        self.name = name

    def __str__ (self):
        return self.name
    __repr__ = __str__

    def __bool__ (self):
        return False

class Success (Failure):
    "Like Failure, but tests as True."
    def __bool__ (self):
        return True

# Outcomes of route_output and route_input, and drop reasons passed
# to the error callback of a queued packet.
NO_ROUTE = Failure ("no route")
DEFERRED = Failure ("deferred")
DROPPED = Failure ("dropped")
NOT_MINE = Failure ("not mine")
UNREACHABLE = Failure ("destination unreachable")
TIMEOUT = Failure ("queue timeout")
OVERFLOW = Failure ("queue overflow")
DELIVERED = Success ("delivered")
FORWARDED = Success ("forwarded")

def require (buf, minlen):
    if len (buf) < minlen:
        raise MissingData

maxint = [ (1 << (8 * i)) - 1 for i in range (9) ]

def seqnewer (a, b):
    """Return the signed 32-bit difference a - b, i.e., a positive
    value if sequence number a is fresher than b, allowing for
    wraparound.
    """
    d = (a - b) & 0xffffffff
    if d & 0x80000000:
        d -= 1 << 32
    return d

class Field:
    """Abstract base class for fields in AODV packets.

    Subclass this to define a particular field.  Typically there is a
    second base class for the Python data type to be used to represent
    the field.  An example is Ipaddr, which is derived from Field and
    int (since an IPv4 address is an integer).

    Minimally a particular field has to define an encode method, to turn
    the field into a byte string, and a decode classmethod, to turn a
    prefix of the supplied byte string into an instance of the field.
    """
    __slots__ = ()

    @abc.abstractmethod
    def encode (self):
        pass

    @classmethod
    @abc.abstractmethod
    def decode (self, buf):
        pass

class Element (object):
    """Element is the base class for most classes that define AODV
    components.  The elements of a node form a tree, whose root is
    the Node object.
    """
    def __init__ (self, parent):
        self.parent = parent
        self.node = parent.node

# Classes used to send work to AODV components.  Everything runs in
# one thread, driven by the virtual-time scheduler, but we keep the
# work item style so the packet handlers all look the same: the
# transport or a timer creates a Work object, and the scheduler calls
# its dispatch method, which hands the work to the dispatch method of
# the component (called the "owner").
#
# Any keyword arguments on the constructor will produce attributes by
# those names, so overriding __init__ is only useful if you need
# something more complicated.

class Work (object):
    """Base class for work object
    """
    def __init__ (self, owner, **kwarg):
        self.owner = owner
        self.__dict__.update (kwarg)

    def dispatch (self):
        self.owner.dispatch (self)

    def __str__ (self):
        return "Work item: {}".format (self.__class__.__name__)

class Received (Work):
    """Notification of a received control packet.  Attributes are
    "packet" (the data), "src" (the address of the sending neighbor),
    "iface" (the Interface it arrived on) and "ttl" (the remaining IP
    TTL of the datagram that carried it).
    """
    def __str__ (self):
        try:
            return "Received from {}: {}".format (self.src, self.packet)
        except AttributeError:
            return "Received: {}".format (self.packet)

_ipaddr_re = re.compile (r"^\d+\.\d+\.\d+\.\d+$")
class Ipaddr (Field, int):
    """An IPv4 address.
    """
    def __new__ (cls, s = 0):
        """Create an Ipaddr from a dotted quad string, an integer, or
        anything that can be converted to a byte string of length 4.
        """
        if isinstance (s, str):
            if not _ipaddr_re.match (s):
                raise ValueError ("Invalid IP address {}".format (s))
            try:
                s = socket.inet_aton (s)
            except OSError:
                raise ValueError ("Invalid IP address {}".format (s)) from None
            v = int.from_bytes (s, NE)
        elif isinstance (s, int):
            v = s
            if v < 0 or v > maxint[4]:
                raise ValueError ("Invalid IP address {}".format (s))
        else:
            s = bytes (s)
            if len (s) != 4:
                raise DecodeError ("Invalid IP address {}", s)
            v = int.from_bytes (s, NE)
        return int.__new__ (cls, v)

    @classmethod
    def decode (cls, buf):
        require (buf, 4)
        return cls (buf[:4]), buf[4:]

    def encode (self):
        return self.to_bytes (4, NE)

    __bytes__ = encode

    def ismulticast (self):
        return (self >> 28) == 0xe

    def __str__ (self):
        return socket.inet_ntoa (self.encode ())

    __repr__ = __str__

BROADCAST = Ipaddr ("255.255.255.255")
ANY = Ipaddr (0)

class Interface (object):
    """A network interface of this node.  Only the addressing matters
    to the routing protocol; the Transport does the actual sending.
    """
    def __init__ (self, name, address, broadcast = BROADCAST):
        self.name = name
        self.address = Ipaddr (address)
        self.broadcast = Ipaddr (broadcast)

    def __str__ (self):
        return "{0.name} ({0.address})".format (self)

    __repr__ = __str__

# What route_output hands back for a usable route.  "gateway" is the
# next hop, "iface" the Interface to send it on.
Route = collections.namedtuple ("Route", "destination source gateway iface")
