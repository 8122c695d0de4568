#!/usr/bin/env python
import unittest
from pydispatch import dispatcher

from felusb import fel
from felusb.progress import Progress, PROGRESS_UPDATE_SIGNAL
from felusb.testing import makeSession, AWUS, STATUS

class ProgressTest(unittest.TestCase):

    def setUp(self):
        self.signals = []
        dispatcher.connect(self.onUpdate, signal=PROGRESS_UPDATE_SIGNAL, sender=dispatcher.Any)

    def tearDown(self):
        dispatcher.disconnect(self.onUpdate, signal=PROGRESS_UPDATE_SIGNAL, sender=dispatcher.Any)

    def onUpdate(self, info):
        self.signals.append(info)

    def test_observers_and_signal(self):
        seen = []
        progress = Progress(200, [seen.append])
        progress.addProgress(50)
        progress(150)
        self.assertEqual(seen, [0.25, 1.0])
        self.assertEqual(self.signals[-1], {'done': 200, 'total': 200, 'progress': 1.0})
        self.assertTrue(progress.isDone())

    def test_empty_total(self):
        self.assertEqual(Progress(0).getProgress(), 1.0)

    def test_as_chunk_callback(self):
        size = 300 * 1024
        session = makeSession(AWUS + AWUS + STATUS + AWUS)
        progress = Progress(size)
        fel.writeBuffer(session, b'\0' * size, 0x2000, progress.addProgress)
        self.assertEqual([s['done'] for s in self.signals], [128 * 1024, 256 * 1024, size])

if __name__ == '__main__':
    unittest.main()
