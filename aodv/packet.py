#!/usr/bin/env python3

"""AODV protocol implementation

Table driven encoding and decoding of AODV messages.
"""

import struct

from .common import *
from . import logging

class InvalidField (AodvException):
    """Invalid field descriptor."""

_double = struct.Struct (">d")

def field_codec (cls, code, args):
    """Return the (encoder, decoder, arguments) entry for one layout
    element of packet class "cls".
    """
    if isinstance (code, str):
        code = code.lower ()
        enc = getattr (cls, "encode_" + code, None)
        dec = getattr (cls, "decode_" + code, None)
        if not (enc and dec):
            raise InvalidField ("Invalid type code {}".format (code))
        if code == "bm":
            # Bit fields: size is what the highest bit needs
            topbit = max (start + bits for name, start, bits, *t in args)
            args = ( (topbit + 7) // 8,
                     [ ( name, start, bits, t[0] if t else None )
                       for name, start, bits, *t in args ] )
        return enc, dec, args
    if not hasattr (code, "decode"):
        raise InvalidField ("Field type {} has no decode method"
                            .format (code.__name__))
    if len (args) != 1:
        raise InvalidField ("{} field takes only a name".format (code.__name__))
    return cls.encode_type, cls.decode_type, ( args[0], code )

def field_names (code, args):
    """Return the attribute names defined by one layout element.
    """
    if isinstance (code, str):
        code = code.lower ()
        if code == "bm":
            return { name for name, *rest in args }
        if code == "res":
            return set ()
    return { args[0] }

class packet_encoding_meta (type):
    """Metaclass for Packet.

    It turns the class attribute "_layout" into "_codetable", the list
    of (encoder, decoder, arguments) entries that encode and decode
    walk through, and makes the layout field names the "__slots__" of
    the class.  A field the class also defines as a class attribute
    (the message type code, for example) is a fixed value instead of a
    slot.  A layout given by a subclass is appended to the one it
    inherits.
    """
    def __new__ (cls, name, bases, classdict):
        layout = classdict.get ("_layout", ())
        slots = set ()
        for code, *args in layout:
            names = field_names (code, args)
            if names & slots:
                raise InvalidField ("Duplicate field in layout of {}"
                                    .format (name))
            slots |= names
        slots -= set (classdict)
        slots |= set (classdict.get ("_addslots", ()))
        classdict["__slots__"] = slots
        result = type.__new__ (cls, name, bases, classdict)
        inherited = getattr (result, "_codetable", [ ])
        if layout:
            result._codetable = inherited + [ field_codec (result, code, args)
                                              for code, *args in layout ]
        elif bases and not inherited:
            raise InvalidField ("Packet class {} has no layout".format (name))
        return result

class Packet (metaclass = packet_encoding_meta):
    """Base class for AODV messages and the datagram header.

    A subclass gives its wire format as "_layout", a sequence of field
    descriptions.  Each is a tuple starting with a field code:

    ( "b", name, n ): unsigned integer of n bytes, most significant
    byte first.

    ( "f", name ): float, sent as an IEEE double.

    ( "bm", ( name, start, bits ), ... ): bit fields packed into as
    many bytes as the highest bit requires.  Bit 0 is the least
    significant bit.  A fourth element in a bit field tuple gives a
    type to convert the decoded value to.

    ( "res", n ): n reserved bytes, sent as zero and ignored on
    receive.

    ( cls, name ): a field whose class does the work; "cls.decode" is
    a class method that returns the value and the rest of the buffer,
    and values have an "encode" method.
    """
    _addslots = { "src", "decoded_from" }

    def __init__ (self, buf = None, **kwargs):
        if not hasattr (self, "_codetable"):
            raise TypeError ("Can't instantiate object of class {}"
                             .format (self.__class__.__name__))
        super ().__init__ ()
        if buf:
            rest = self.decode (buf)
            if rest:
                logging.debug ("{} bytes of unexpected data after {}",
                               len (rest), self.__class__.__name__)
                raise ExtraData
        for k, v in kwargs.items ():
            setattr (self, k, v)

    @classmethod
    def allslots (cls):
        ret = set ()
        for c in cls.__mro__:
            ret.update (getattr (c, "__slots__", ()))
        return ret

    def __setattr__ (self, field, val):
        # Fields given as class attributes are fixed, so a decoded
        # packet has to match them.
        try:
            super ().__setattr__ (field, val)
        except AttributeError:
            fixed = getattr (self.__class__, field, None)
            if fixed is None:
                raise
            if fixed != val:
                raise WrongValue ("Field {} is {}, expected {}"
                                  .format (field, val, fixed)) from None

    def encode_res (self, flen):
        return bytes (flen)

    def decode_res (self, buf, flen):
        require (buf, flen)
        return buf[flen:]

    def encode_type (self, field, t):
        val = getattr (self, field, None)
        if val is None:
            val = t ()
        elif not isinstance (val, t):
            val = t (val)
        return val.encode ()

    def decode_type (self, buf, field, t):
        val, buf = t.decode (buf)
        setattr (self, field, val)
        return buf

    def encode_b (self, field, flen):
        val = getattr (self, field, 0)
        try:
            return val.to_bytes (flen, NE)
        except OverflowError:
            logging.debug ("Field {} value {} does not fit in {} bytes",
                           field, val, flen)
            raise FieldOverflow from None

    def decode_b (self, buf, field, flen):
        require (buf, flen)
        setattr (self, field, int.from_bytes (buf[:flen], NE))
        return buf[flen:]

    def encode_f (self, field):
        return _double.pack (float (getattr (self, field, 0.0)))

    def decode_f (self, buf, field):
        require (buf, _double.size)
        val, = _double.unpack (buf[:_double.size])
        setattr (self, field, val)
        return buf[_double.size:]

    def encode_bm (self, flen, elements):
        field = 0
        for name, start, bits, ftype in elements:
            val = int (getattr (self, name, 0))
            if val < 0 or val >> bits:
                logging.debug ("Field {} value {} does not fit in {} bits",
                               name, val, bits)
                raise FieldOverflow
            field |= val << start
        return field.to_bytes (flen, NE)

    def decode_bm (self, buf, flen, elements):
        require (buf, flen)
        field = int.from_bytes (buf[:flen], NE)
        for name, start, bits, ftype in elements:
            val = (field >> start) & ((1 << bits) - 1)
            if ftype:
                val = ftype (val)
            setattr (self, name, val)
        return buf[flen:]

    def encode (self):
        """Return the encoded packet.  A field that has not been set
        encodes as zero, or for a typed field as the value the type's
        constructor gives with no arguments.
        """
        parts = [ enc (self, *args) for enc, dec, args in self._codetable ]
        payload = getattr (self, "payload", None)
        if payload:
            parts.append (bytes (payload))
        return b"".join (parts)

    def decode (self, buf):
        """Set the packet fields from "buf" and return whatever the
        layout did not use.  If the class has a "payload" field, the
        remainder goes there instead.
        """
        self.decoded_from = buf
        for enc, dec, args in self._codetable:
            buf = dec (self, buf, *args)
        if "payload" in self.allslots ():
            self.payload = bytes (buf)
            buf = b""
        self.check ()
        return buf

    def check (self):
        """Consistency checks after decode.  Subclasses raise a
        DecodeError subclass if something is wrong.
        """
        pass

    def __bytes__ (self):
        return self.encode ()

    def __len__ (self):
        return len (self.encode ())

    def __bool__ (self):
        return True

    def __str__ (self):
        fields = [ "{}={}".format (a, getattr (self, a))
                   for a in sorted (self.allslots ())
                   if a != "decoded_from" and hasattr (self, a) ]
        return "{}({})".format (self.__class__.__name__, ", ".join (fields))

    __repr__ = __str__

    def __eq__ (self, other):
        return bytes (self) == bytes (other)

    def __ne__ (self, other):
        return bytes (self) != bytes (other)

    __hash__ = None
