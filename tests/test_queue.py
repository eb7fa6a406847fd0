#!/usr/bin/env python3

from tests.aodvtest import *

from aodv import queue

class test_queue (AodvTest):
    def setUp (self):
        super ().setUp ()
        self.p = t_parent ()
        self.q = queue.PendingQueue (self.p, 3, 30.0)
        self.ucb = unittest.mock.Mock ()
        self.ecb = unittest.mock.Mock ()

    def qe (self, dst, ident = 1):
        pkt = self.datagram (addr (1), addr (dst), ident)
        return queue.QueueEntry (pkt, self.ucb, self.ecb)

    def test_fifo (self):
        a = self.qe (3, 1)
        b = self.qe (4, 2)
        c = self.qe (3, 3)
        for e in (a, b, c):
            self.assertTrue (self.q.enqueue (e))
        self.assertTrue (self.q.find (addr (3)))
        self.assertIs (self.q.dequeue (addr (3)), a)
        self.assertIs (self.q.dequeue (addr (3)), c)
        self.assertIsNone (self.q.dequeue (addr (3)))
        self.assertFalse (self.q.find (addr (3)))
        self.assertEqual (len (self.q), 1)

    def test_duplicate (self):
        a = self.qe (3)
        self.assertTrue (self.q.enqueue (a))
        self.assertFalse (self.q.enqueue (queue.QueueEntry (a.packet,
                                                            self.ucb)))
        self.assertEqual (len (self.q), 1)

    def test_overflow (self):
        entries = [ self.qe (3, i) for i in range (4) ]
        for e in entries:
            self.q.enqueue (e)
        self.assertEqual (len (self.q), 3)
        self.ecb.assert_called_once_with (entries[0].packet, OVERFLOW)
        self.assertIs (self.q.dequeue (addr (3)), entries[1])

    def test_timeout (self):
        self.q.enqueue (self.qe (3, 1))
        self.p.timers.run_for (20)
        self.q.enqueue (self.qe (3, 2))
        self.p.timers.run_for (11)
        self.assertEqual (len (self.q), 1)
        self.assertEqual (self.ecb.call_count, 1)
        self.assertIs (self.ecb.call_args[0][1], TIMEOUT)
        self.assertEqual (self.q.dequeue (addr (3)).packet.ident, 2)

    def test_drop_dst (self):
        for i, dst in enumerate ((3, 4, 3)):
            self.q.enqueue (self.qe (dst, i))
        self.assertEqual (self.q.drop_dst (addr (3), UNREACHABLE), 2)
        self.assertEqual (self.ecb.call_count, 2)
        for c in self.ecb.call_args_list:
            self.assertIs (c[0][1], UNREACHABLE)
        self.assertEqual (len (self.q), 1)
        self.assertEqual (self.ucb.call_count, 0)

if __name__ == "__main__":
    unittest.main ()
