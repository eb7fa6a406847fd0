#!/usr/bin/env python3

"""Interfaces to the things the routing layer needs from its
surroundings, and simple implementations of some of them.

"""

from abc import abstractmethod, ABCMeta

from .common import *

class Transport (metaclass = ABCMeta):
    """Sends AODV control messages.  Received messages are delivered by
    the transport as Received work items to the node (see Node.receive).
    Transmission failures to a neighbor are reported by calling
    Node.tx_error.
    """
    @abstractmethod
    def send (self, node, iface, data, dest, ttl):
        """Send "data" (bytes) from "node" out "iface" to IP address
        "dest" (a neighbor, or a broadcast address), UDP port AODV_PORT,
        with IP TTL "ttl".
        """
        pass

class EnergyProvider (metaclass = ABCMeta):
    @abstractmethod
    def energy (self):
        """Residual energy score of the local node, 0.0 to 1.0.
        """
        pass

class CongestionProvider (metaclass = ABCMeta):
    @abstractmethod
    def congestion (self):
        """Congestion score of the local node, 0.0 (outbound queue full)
        to 1.0 (queue empty).
        """
        pass

class Battery (EnergyProvider):
    """An energy source with a given initial capacity.  A capacity of
    zero means there is no energy model, which scores as full.
    """
    def __init__ (self, initial = 0.0, remaining = None):
        self.initial = initial
        self.remaining = initial if remaining is None else remaining

    def consume (self, amount):
        self.remaining = max (0.0, self.remaining - amount)

    def energy (self):
        if not self.initial:
            return 1.0
        return max (0.0, min (1.0, self.remaining / self.initial))

class FixedEnergy (EnergyProvider):
    "Energy score pinned at a given value"
    def __init__ (self, value = 1.0):
        self.value = value

    def energy (self):
        return self.value

class QueueCongestion (CongestionProvider):
    """Congestion score from the occupancy of an outbound queue:
    (capacity - queued) / capacity.  "queued" is a callable that
    returns the current queue length.
    """
    def __init__ (self, capacity, queued = None):
        self.capacity = capacity
        self.queued = queued or (lambda: 0)

    def congestion (self):
        if not self.capacity:
            return 1.0
        return max (0.0, (self.capacity - self.queued ()) / self.capacity)
