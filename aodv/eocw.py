#!/usr/bin/env python3

"""EOCW path selection.

When a route request reaches its destination, the destination does not
answer the first copy.  Instead it collects every copy that arrives
within a short window (each copy came along a different path, and
carries the minimum residual energy and average congestion seen along
that path), scores the candidate paths, and answers only along the
best one.

Every path is judged on three criteria, always in this order:

    congestion score   (1.0 = idle queues, 0.0 = full)
    energy score       (1.0 = full battery)
    hop count score    (a step function rewarding short paths)

Criterion weights come from two sources that are multiplied together
and renormalized.  The first is a policy: either a fixed table indexed
by the local energy level, or fuzzy inference over the local energy
and congestion.  The second is the entropy weight method, which gives
more weight to the criteria that actually tell the candidates apart.
"""

import collections
import math
import random

from .common import *
from . import logging
from . import timers

EQUAL = (1 / 3, 1 / 3, 1 / 3)
EPSILON = 1e-12

# A path seen by the destination.  "next_hop" and "iface" say where
# the reply has to go to follow that path back to the originator.
CandidatePath = collections.namedtuple ("CandidatePath",
                                        "min_energy avg_congestion hop "
                                        "next_hop iface")

def hop_score (hop):
    if hop <= 2:
        return 1.0
    if hop <= 4:
        return 0.6
    if hop <= 6:
        return 0.4
    return 0.1

def criteria (path):
    "The criterion values of a path, in weight order"
    return (path.avg_congestion, path.min_energy, hop_score (path.hop))

def triangle (v, a, b, c):
    """Triangular membership function with feet at a and c and peak
    at b.
    """
    if v <= a or v >= c:
        return 0.0
    if v == b:
        return 1.0
    if v < b:
        return (v - a) / (b - a)
    return (c - v) / (c - b)

# Membership function knees.  The same triangles classify energy as
# low/medium/high and the congestion score as busy/normal/free.
LOW = (-0.1, 0.0, 0.4)
MEDIUM = (0.2, 0.5, 0.8)
HIGH = (0.6, 1.0, 1.1)

# Fuzzy rule base: (energy set, congestion set) -> output weights
# (congestion, energy, hop count)
RULES = (
    ( LOW,    LOW,    ( 0.45, 0.50, 0.05 ) ),
    ( LOW,    MEDIUM, ( 0.20, 0.70, 0.10 ) ),
    ( LOW,    HIGH,   ( 0.10, 0.80, 0.10 ) ),
    ( MEDIUM, LOW,    ( 0.70, 0.20, 0.10 ) ),
    ( MEDIUM, MEDIUM, ( 0.33, 0.34, 0.33 ) ),
    ( MEDIUM, HIGH,   ( 0.20, 0.20, 0.60 ) ),
    ( HIGH,   LOW,    ( 0.80, 0.10, 0.10 ) ),
    ( HIGH,   MEDIUM, ( 0.20, 0.10, 0.70 ) ),
    ( HIGH,   HIGH,   ( 0.10, 0.05, 0.85 ) ),
    )

def normalize (w):
    """Scale a weight triple to sum to 1.  A triple summing to zero
    becomes the equal weights.
    """
    total = sum (w)
    if total <= 0:
        return EQUAL
    return tuple (x / total for x in w)

def fuzzy_weights (energy, congestion):
    """Criterion weights by fuzzy inference on the local energy and
    congestion scores.  Each rule fires with the smaller of its two
    membership degrees; the result is the firing-strength weighted
    average of the rule outputs.
    """
    num = [ 0.0, 0.0, 0.0 ]
    total = 0.0
    for eset, cset, out in RULES:
        fire = min (triangle (energy, *eset), triangle (congestion, *cset))
        if fire:
            for i in range (3):
                num[i] += fire * out[i]
            total += fire
    if total == 0:
        return EQUAL
    return normalize ([ n / total for n in num ])

def static_weights (energy):
    """Fixed policy weights selected by the local energy score.

    Energy between 0.3 and 0.5 matches none of the bands and falls
    through to weighting hop count only.
    """
    if energy >= 0.8:
        return (0.5396, 0.297, 0.1634)
    if energy >= 0.5:
        return (0.637, 0.2583, 0.1047)
    if energy <= 0.3:
        return (0.7514, 0.1782, 0.0704)
    return (0.0, 0.0, 1.0)

def policy_weights (energy, congestion, fuzzy = True):
    if fuzzy:
        return fuzzy_weights (energy, congestion)
    return static_weights (energy)

def entropy_weights (paths):
    """Entropy weight method over the candidate paths.  A criterion on
    which all paths score alike has entropy 1 and gets no weight.
    """
    m = len (paths)
    if m <= 1:
        return EQUAL
    k = 1 / math.log (m)
    rows = [ criteria (p) for p in paths ]
    d = [ ]
    for j in range (3):
        col = [ r[j] for r in rows ]
        total = sum (col)
        h = 0.0
        if total:
            for x in col:
                p = x / total
                if p > 0:
                    h -= p * math.log (p)
            h *= k
        # Rounding can leave a criterion that doesn't discriminate
        # with a divergence of a few ulps instead of zero.
        dj = 1.0 - h
        if dj < EPSILON:
            dj = 0.0
        d.append (dj)
    total = sum (d)
    if total == 0:
        return EQUAL
    return tuple (x / total for x in d)

def combine (policy, mu):
    "Final criterion weights: elementwise product, renormalized"
    return normalize ([ p * m for p, m in zip (policy, mu) ])

def score (path, weights):
    return sum (w * c for w, c in zip (weights, criteria (path)))

def select_best (paths, energy, congestion, fuzzy = True):
    """Pick the best of the candidate paths.  Returns the index of the
    winner, the list of scores and the weights used.  Ties go to the
    path that arrived first.
    """
    weights = combine (policy_weights (energy, congestion, fuzzy),
                       entropy_weights (paths))
    scores = [ score (p, weights) for p in paths ]
    best = 0
    for i, s in enumerate (scores):
        if s > scores[best]:
            best = i
    return best, scores, weights

def accumulate (min_energy, avg_congestion, hop, energy, congestion):
    """Fold this node's energy and congestion into the path metrics
    carried by a route request that has come "hop" hops so far.
    Returns the new (min energy, average congestion, hop count).
    """
    newhop = hop + 1
    return (min (min_energy, energy),
            (avg_congestion * hop + congestion) / newhop,
            newhop)

def forward_delay (energy, congestion, fuzzy = True):
    """How long to hold a route request before rebroadcasting it.
    With fuzzy policy, unhealthy nodes wait longer so healthier
    neighbors get to relay first.
    """
    if fuzzy:
        penalty = (1.0 - energy) + (1.0 - congestion)
        return penalty * 0.050 + random.randint (0, 5) / 1000
    return random.randint (0, 10) / 1000

class Collection (Element, timers.Timer):
    """Candidate paths for one route request.  Its parent is the
    PathCollector.
    """
    def __init__ (self, parent, origin, rreqid, dst):
        Element.__init__ (self, parent)
        timers.Timer.__init__ (self)
        self.origin = origin
        self.rreqid = rreqid
        self.dst = dst
        self.paths = [ ]

    def __str__ (self):
        return "candidate paths for {} request {}".format (self.origin,
                                                          self.rreqid)

    def dispatch (self, item):
        if isinstance (item, timers.Timeout):
            self.parent.done (self)

class PathCollector (Element):
    """Collects candidate paths per route request, and hands each
    collection to the routing layer once its window closes.
    """
    def __init__ (self, parent, window = COLLECT_WINDOW):
        super ().__init__ (parent)
        self.window = window
        self.pending = dict ()

    def __len__ (self):
        return len (self.pending)

    def add (self, origin, rreqid, dst, path):
        key = (origin, rreqid)
        c = self.pending.get (key, None)
        if c is None:
            c = self.pending[key] = Collection (self, origin, rreqid, dst)
            self.node.timers.start (c, self.window)
        c.paths.append (path)
        logging.trace ("Candidate path {} for request {} from {}",
                       len (c.paths), rreqid, origin)
        return c

    def done (self, c):
        del self.pending[(c.origin, c.rreqid)]
        if c.paths:
            self.parent.reply_best (c)

    def stop (self):
        for c in self.pending.values ():
            self.node.timers.stop (c)
        self.pending.clear ()
