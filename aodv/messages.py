#!/usr/bin/env python3

"""AODV control message formats, and the datagram header used to
carry data through the routing layer.

The control messages follow the usual AODV layouts.  Route Request and
Route Reply carry two extra fields at the end, the path minimum
energy score and path average congestion score accumulated along the
route.
"""

from .common import *
from . import packet
from . import logging

# Max number of unreachable destinations in one Route Error
MAX_RERR_DESTS = 255

class Lifetime (Field, float):
    """A lifetime in seconds, sent as a 32-bit count of milliseconds.
    """
    def __new__ (cls, v = 0.0):
        return float.__new__ (cls, v)

    @classmethod
    def decode (cls, buf):
        require (buf, 4)
        return cls (int.from_bytes (buf[:4], NE) / 1000), buf[4:]

    def encode (self):
        if self * 1000 >= maxint[4]:
            ms = maxint[4]
        else:
            ms = max (0, int (round (self * 1000)))
        return ms.to_bytes (4, NE)

class AodvHdr (packet.Packet):
    _layout = ( ( "b", "code", 1 ), )

class RouteRequest (AodvHdr):
    _layout = ( ( "bm",
                  ( "join", 15, 1 ),
                  ( "repair", 14, 1 ),
                  ( "gratuitous", 13, 1 ),
                  ( "dest_only", 12, 1 ),
                  ( "unknown_seqno", 11, 1 ) ),
                ( "b", "hopcount", 1 ),
                ( "b", "id", 4 ),
                ( Ipaddr, "dst" ),
                ( "b", "dst_seqno", 4 ),
                ( Ipaddr, "origin" ),
                ( "b", "origin_seqno", 4 ),
                ( "f", "min_energy" ),
                ( "f", "avg_congestion" ) )
    code = RREQ

class RouteReply (AodvHdr):
    _layout = ( ( "bm",
                  ( "repair", 15, 1 ),
                  ( "ack_required", 14, 1 ),
                  ( "prefix_size", 0, 5 ) ),
                ( "b", "hopcount", 1 ),
                ( Ipaddr, "dst" ),
                ( "b", "dst_seqno", 4 ),
                ( Ipaddr, "origin" ),
                ( Lifetime, "lifetime" ),
                ( "f", "min_energy" ),
                ( "f", "avg_congestion" ) )
    code = RREP

    def ishello (self):
        return self.dst == self.origin

class RouteError (AodvHdr):
    """Route Error.  The unreachable destinations are in "dests", a list
    of (address, sequence number) pairs, which follows the fixed part.
    """
    _layout = ( ( "bm",
                  ( "no_delete", 15, 1 ) ),
                ( "b", "destcount", 1 ) )
    _addslots = { "dests" }
    code = RERR

    def __init__ (self, *args, **kwargs):
        self.dests = [ ]
        super ().__init__ (*args, **kwargs)

    def add (self, dst, seqno):
        """Add an unreachable destination.  Returns False if the message
        is full.  A destination that is already listed is not added
        again, but that counts as success.
        """
        for d, s in self.dests:
            if d == dst:
                return True
        if len (self.dests) >= MAX_RERR_DESTS:
            return False
        self.dests.append ((Ipaddr (dst), seqno))
        return True

    def clear (self):
        self.dests = [ ]

    def encode (self):
        self.destcount = len (self.dests)
        ret = [ super ().encode () ]
        for dst, seqno in self.dests:
            ret.append (dst.encode ())
            ret.append (seqno.to_bytes (4, NE))
        return b"".join (ret)

    def decode (self, buf):
        buf = super ().decode (buf)
        dests = [ ]
        for i in range (self.destcount):
            dst, buf = Ipaddr.decode (buf)
            require (buf, 4)
            dests.append ((dst, int.from_bytes (buf[:4], NE)))
            buf = buf[4:]
        self.dests = dests
        return buf

    def check (self):
        if self.destcount == 0:
            logging.debug ("Route Error with no destinations")
            raise WrongValue

class ReplyAck (AodvHdr):
    _layout = ( ( "res", 1 ), )
    code = RREP_ACK

packetformats = { c.code : c for c in globals ().values ()
                  if type (c) is packet.packet_encoding_meta
                  and hasattr (c, "code") and c is not AodvHdr }

def decode (buf):
    """Decode a received AODV control message.  Raises DecodeError
    (or a subclass) if the message is malformed or of unknown type.
    """
    if not buf:
        raise MissingData
    try:
        cls = packetformats[buf[0]]
    except KeyError:
        raise WrongValue ("Unknown AODV message type {}", buf[0]) from None
    return cls (buf)

class Datagram (packet.Packet):
    """Network layer datagram header plus payload.  The routing layer
    only ever looks at the addresses, TTL and identification; the
    payload is opaque.
    """
    _layout = ( ( Ipaddr, "source" ),
                ( Ipaddr, "destination" ),
                ( "b", "ttl", 1 ),
                ( "b", "ident", 2 ) )
    _addslots = { "payload" }
