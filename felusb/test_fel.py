#!/usr/bin/env python
import unittest
from struct import pack, unpack

from felusb import fel, awusb
from felusb.errors import FelUsbError, ProtocolDesync
from felusb.testing import makeSession, AWUS, STATUS, EP_OUT

KiB = 1024

VERSION_REPLY = pack('<8sIIHBBIII', b'AWUSBFEX', 0x00162300, 1, 1, 0x44, 0x08, 0x7e00, 0, 0)

def statusExchange():
    return STATUS + AWUS

def envelopes(session):
    '''
    (direction, length) of every request envelope, in order
    '''
    return [awusb.unpackRequest(w[1]) for w in session.handle.writes if w[1].startswith(b'AWUC')]

def felRequests(session):
    return [unpack('<IIII', w[1]) for w in session.handle.writes if len(w[1]) == 16]

class FelRequestTest(unittest.TestCase):

    def test_layout(self):
        self.assertEqual(fel.packRequest(fel.FEL_UPLOAD, 0x2000, 0x40),
                         b'\x03\x01\0\0' + b'\0\x20\0\0' + b'\x40\0\0\0' + b'\0\0\0\0')

    def test_version_decoding(self):
        version = fel.unpackVersion(VERSION_REPLY)
        self.assertEqual(version.soc_id, 0x1623)
        self.assertEqual(version.signature, b'AWUSBFEX')
        self.assertEqual(version.protocol, 1)
        self.assertEqual(version.scratchpad, 0x7e00)

    def test_short_version_reply(self):
        with self.assertRaises(FelUsbError):
            fel.unpackVersion(VERSION_REPLY[:20])


class FelCommandTest(unittest.TestCase):

    def test_get_version(self):
        session = makeSession(AWUS + VERSION_REPLY + AWUS + statusExchange())
        version = fel.getVersion(session)
        self.assertEqual(version.soc_id, 0x1623)
        self.assertEqual(felRequests(session), [(fel.FEL_VERSION, 0, 0, 0)])
        self.assertEqual(envelopes(session), [(awusb.AW_USB_WRITE, 16), (awusb.AW_USB_READ, 32), (awusb.AW_USB_READ, 8)])
        self.assertEqual(session.lastStatus, STATUS)

    def test_execute(self):
        session = makeSession(AWUS + statusExchange())
        status = fel.execute(session, 0x2000)
        self.assertEqual(status, STATUS)
        self.assertEqual(felRequests(session), [(fel.FEL_RUN, 0x2000, 0, 0)])
        self.assertEqual(envelopes(session), [(awusb.AW_USB_WRITE, 16), (awusb.AW_USB_READ, 8)])
        self.assertEqual(len(session.handle.writes), 3) # header envelope, FEL request, status envelope
        self.assertFalse(session.handle.incoming)

    def test_read_memory(self):
        session = makeSession(AWUS + b'\xde\xad\xbe\xef' + AWUS + statusExchange())
        self.assertEqual(fel.readMemory(session, 0x7e00, 4), b'\xde\xad\xbe\xef')
        self.assertEqual(felRequests(session), [(fel.FEL_UPLOAD, 0x7e00, 4, 0)])
        self.assertEqual(envelopes(session), [(awusb.AW_USB_WRITE, 16), (awusb.AW_USB_READ, 4), (awusb.AW_USB_READ, 8)])

    def test_write_memory(self):
        session = makeSession(AWUS + AWUS + statusExchange())
        fel.writeMemory(session, 0x4a000000, b'0123456789', 8)
        self.assertEqual(felRequests(session), [(fel.FEL_DOWNLOAD, 0x4a000000, 8, 0)])
        self.assertEqual(envelopes(session), [(awusb.AW_USB_WRITE, 16), (awusb.AW_USB_WRITE, 8), (awusb.AW_USB_READ, 8)])
        self.assertIn((EP_OUT, b'01234567', 10000), session.handle.writes)

    def test_write_memory_length_beyond_buffer(self):
        session = makeSession()
        with self.assertRaises(ValueError):
            fel.writeMemory(session, 0, b'abc', 4)
        self.assertEqual(session.handle.writes, [])

    def test_write_with_progress(self):
        session = makeSession(AWUS + AWUS + statusExchange())
        reported = []
        fel.writeMemoryWithProgress(session, 0x2000, b'\x55' * (300 * KiB), onChunk=reported.append)
        self.assertEqual(reported, [128 * KiB, 128 * KiB, 44 * KiB])
        self.assertEqual(sum(reported), 300 * KiB)

    def test_internal_write_never_reports_progress(self):
        session = makeSession(AWUS + AWUS + statusExchange())
        fel.write(session, b'\x55' * (600 * KiB), 0x2000)
        payload = [len(w[1]) for w in session.handle.writes if w[1][:1] == b'\x55']
        self.assertEqual(payload, [512 * KiB, 88 * KiB])

    def test_aborted_progress_write_ends_the_session(self):
        session = makeSession(AWUS + AWUS + statusExchange())
        def onChunk(sent):
            raise RuntimeError('operator cancelled')
        with self.assertRaises(RuntimeError):
            fel.writeMemoryWithProgress(session, 0x2000, b'\x55' * (300 * KiB), onChunk=onChunk)
        payload = [len(w[1]) for w in session.handle.writes if w[1][:1] == b'\x55']
        self.assertEqual(payload, [128 * KiB])
        self.assertFalse(session.usable)
        with self.assertRaises(FelUsbError):
            fel.execute(session, 0x2000)

    def test_desync_aborts_the_operation(self):
        session = makeSession(b'garbage------' + statusExchange())
        with self.assertRaises(ProtocolDesync):
            fel.execute(session, 0x2000)
        self.assertEqual(len(session.handle.writes), 2) # no status exchange after the failure


class SidTest(unittest.TestCase):

    def test_readl_n(self):
        words = [0x11111111, 0x22222222]
        stream = AWUS + AWUS + statusExchange() # code upload
        for word in words:
            stream += AWUS + statusExchange() # exe
            stream += AWUS + pack('<I', word) + AWUS + statusExchange() # read
        session = makeSession(stream)
        self.assertEqual(fel.readl_n(session, 0x01C23800, 2, 0x1000), words)
        requests = felRequests(session)
        self.assertEqual(requests[0], (fel.FEL_DOWNLOAD, 0x1000, 28, 0))
        self.assertEqual(requests[1], (fel.FEL_RUN, 0x1000, 0, 0))
        self.assertEqual(requests[2], (fel.FEL_UPLOAD, 0x1000 + 28, 4, 0))
        code = [w[1] for w in session.handle.writes if len(w[1]) == 28][0]
        self.assertEqual(unpack('<7I', code)[-1], 0x01C23800)

    def test_unknown_soc(self):
        reply = pack('<8sIIHBBIII', b'AWUSBFEX', 0x00999900, 1, 1, 0, 0, 0, 0, 0)
        session = makeSession(AWUS + reply + AWUS + statusExchange())
        with self.assertRaises(FelUsbError):
            fel.getSid(session)

if __name__ == '__main__':
    unittest.main()
