'''
Chunked bulk transfers.

Every call blocks for at most session.timeout milliseconds, so chunk sizes are bounded
to what the slowest link moves well within that time (see config.MAX_BULK_SEND).
'''
import logging
import usb1

from felusb import config
from felusb.errors import usbError, TransferFailed
log = logging.getLogger('felusb')

def chunkSize(progress):
    '''
    Largest chunk for one bulk call. More, smaller chunks when someone wants progress updates
    '''
    return config.PROGRESS_BULK_SEND if progress else config.MAX_BULK_SEND

def _failed(session, err, caption):
    session.usable = False
    usbError(err, caption, TransferFailed)

def _stalled(session, caption):
    session.usable = False
    message = '{} ERROR: transfer moved no data'.format(caption)
    log.error(message)
    raise TransferFailed(message)

def bulkSend(session, endpoint, data, progress=None):
    '''
    Send all of data on endpoint.
    :param progress: optional callable, called with the number of bytes sent after each chunk
    '''
    session.checkUsable()
    data = bytes(data)
    maxChunk = chunkSize(progress)
    length = len(data)
    offset = 0
    try:
        while length > 0:
            chunk = min(length, maxChunk)
            try:
                sent = session.handle.bulkWrite(endpoint, data[offset:offset + chunk], session.timeout)
            except usb1.USBError as e:
                _failed(session, e, 'usb_bulk_send()')
            if sent <= 0:
                _stalled(session, 'usb_bulk_send()')
            length -= sent
            offset += sent

            if progress:
                progress(sent) #notification after each chunk
    except BaseException:
        session.usable = False # the device still waits for the rest of the payload
        raise
    return offset

def bulkRecv(session, endpoint, length):
    '''
    Receive exactly length bytes from endpoint, in chunks of at most config.MAX_BULK_SEND
    '''
    session.checkUsable()
    maxChunk = chunkSize(None)
    result = bytearray()
    try:
        while length > 0:
            chunk = min(length, maxChunk)
            try:
                data = session.handle.bulkRead(endpoint, chunk, session.timeout)
            except usb1.USBError as e:
                _failed(session, e, 'usb_bulk_recv()')
            if not data:
                _stalled(session, 'usb_bulk_recv()')
            result += data
            length -= len(data)
    except BaseException:
        session.usable = False # the rest of the reply is still queued on the device
        raise
    return bytes(result)
