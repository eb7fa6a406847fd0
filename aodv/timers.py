#!/usr/bin/env python3

"""Timer support for AODV

This implements a virtual-time event scheduler, with callbacks on
expiration.  Nothing here sleeps: time advances only when the
scheduler is run, jumping from one pending event to the next.
Events due at the same instant run in the order they were scheduled.
"""

from abc import abstractmethod, ABCMeta
import heapq
import itertools

from .common import *
from . import logging

class Timer (metaclass = ABCMeta):
    """Abstract base class for an object that can be put on the
    Scheduler, i.e., acts as a timer.

    Every start or stop bumps "revcount".  A scheduled expiration
    remembers the revcount it was scheduled with, and is discarded if
    that no longer matches when it comes due.  That is how a stop, or
    a restart, cancels the previous expiration without having to dig
    it out of the event queue.
    """
    def __init__ (self):
        self.revcount = 0
        self.due = None

    def islinked (self):
        """Return True if the timer is currently running.
        """
        return self.due is not None

    @abstractmethod
    def dispatch (self, item):
        """This method is called if the timer expires.
        """
        pass

class CallbackTimer (Timer):
    """A simple timer that does a call to a given function with
    given arguments on expiration.
    """
    def __init__ (self, fun, *args):
        super ().__init__ ()
        self.fun = fun
        self.args = args

    def dispatch (self, item):
        self.fun (*self.args)

    def __str__ (self):
        return "CallbackTimer for {}".format (getattr (self.fun, "__name__",
                                                       self.fun))

class Timeout (Work):
    """A timer has timed out.
    """
    def __init__ (self, owner, revcount = None):
        if revcount is None:
            revcount = owner.revcount
        self.revcount = revcount
        super ().__init__ (owner)

    def dispatch (self):
        if self.revcount == self.owner.revcount:
            self.owner.due = None
            super ().dispatch ()

class Scheduler (object):
    """The virtual-time scheduler.  One instance is normally shared by
    all the nodes of a simulated network, so they have a common clock.
    """
    def __init__ (self, now = 0.0):
        self.now = now
        self.queue = [ ]
        self.seq = itertools.count ()

    def _push (self, when, work):
        heapq.heappush (self.queue, (when, next (self.seq), work))

    def addwork (self, work, delay = 0.0):
        """Queue a work item to be dispatched "delay" seconds from now
        (default: now, but after everything already due now).
        """
        self._push (self.now + delay, work)

    def start (self, item, timeout):
        """Start timer running for "item", it will time out in "timeout"
        seconds.  Any previous expiration of that timer is cancelled.

        If the timer times out, send a Timeout work item to "item".
        """
        if not isinstance (item, Timer):
            raise TypeError ("Timer item is not of Timer type")
        if timeout < 0:
            timeout = 0
        item.revcount += 1
        item.due = self.now + timeout
        self._push (item.due, Timeout (item, item.revcount))
        if logging.tracing:
            logging.trace ("Started {:.3f} second timeout for {}",
                           timeout, item)

    def stop (self, item):
        """Stop the timer for "item".
        """
        if not isinstance (item, Timer):
            raise TypeError ("Timer item is not of Timer type")
        if item.due is not None:
            if logging.tracing:
                logging.trace ("Stopped timeout for {}", item)
            item.revcount += 1
            item.due = None

    def remaining (self, item):
        """Return the time left until "item" expires, or None if it
        isn't running.
        """
        if item.due is None:
            return None
        return max (0.0, item.due - self.now)

    def call_later (self, delay, fun, *args):
        """Arrange for fun(*args) to be called "delay" seconds from
        now.  Returns the CallbackTimer, which can be handed to stop()
        to cancel the call.
        """
        t = CallbackTimer (fun, *args)
        self.start (t, delay)
        return t

    def pending (self):
        return len (self.queue)

    def step (self):
        """Run the next due event, advancing the clock to its time.
        Returns False if there was nothing to do.
        """
        if not self.queue:
            return False
        when, seq, work = heapq.heappop (self.queue)
        if when > self.now:
            self.now = when
        work.dispatch ()
        return True

    def run_until (self, t):
        """Run all events due at or before virtual time t, then set the
        clock to t.
        """
        while self.queue and self.queue[0][0] <= t:
            self.step ()
        self.now = max (self.now, t)

    def run_for (self, dt):
        self.run_until (self.now + dt)

    def run (self, limit = None):
        """Run until there is nothing left to do, or until "limit"
        events have been processed.
        """
        count = 0
        while self.step ():
            count += 1
            if limit is not None and count >= limit:
                break
        return count
