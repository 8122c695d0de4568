'''
The "AWUC"/"AWUS" envelope every FEL transfer is wrapped in.

A transfer is: request envelope out, payload in the announced direction, 13 byte
acknowledgement in. The request layout (32 bytes, little-endian, packed):
signature[8] length:u32 unknown1:u32 request:u16 length2:u32 pad[10]
'''
import logging
from struct import pack, unpack_from, calcsize

from felusb.bulk import bulkSend, bulkRecv
from felusb.errors import ProtocolDesync
log = logging.getLogger('felusb')

AW_USB_READ = 0x11
AW_USB_WRITE = 0x12

USB_CMD_LEN = 0x0c000000
USB_REQUEST_FORMAT = '<8sIIHI10x'
USB_REQUEST_LENGTH = calcsize(USB_REQUEST_FORMAT) # 32

RESPONSE_BUFFER_LENGTH = 13 # AWUSBResponse
AWUC = b"AWUC"
AWUS_RESPONSE = b"AWUS"

def packRequest(direction, length):
    length &= 0xFFFFFFFF
    return pack(USB_REQUEST_FORMAT, AWUC, length, USB_CMD_LEN, direction, length)

def unpackRequest(buffer):
    '''
    Parse a request envelope back into (direction, length). Used to check what went out
    '''
    if len(buffer) < USB_REQUEST_LENGTH:
        raise ProtocolDesync('request envelope too short: {} bytes'.format(len(buffer)))
    signature, length, unknown1, direction, length2 = unpack_from(USB_REQUEST_FORMAT, buffer)
    if signature.rstrip(b'\0') != AWUC:
        raise ProtocolDesync('bad request signature {!r}'.format(signature))
    if length != length2:
        raise ProtocolDesync('request lengths differ: {:#x} != {:#x}'.format(length, length2))
    return direction, length

def sendRequest(session, direction, length):
    bulkSend(session, session.endpointOut, packRequest(direction, length))

def readResponse(session):
    response = bulkRecv(session, session.endpointIn, RESPONSE_BUFFER_LENGTH)
    if not response.startswith(AWUS_RESPONSE):
        session.usable = False
        message = 'aw_read_usb_response() signature mismatch! got {!r}'.format(response[:4])
        log.error(message)
        raise ProtocolDesync(message)
    return response

def usbWrite(session, data, progress=None):
    '''
    WRITE envelope, then data out, then the acknowledgement.
    :param progress: optional per-chunk callback, see bulk.bulkSend
    '''
    sendRequest(session, AW_USB_WRITE, len(data))
    bulkSend(session, session.endpointOut, data, progress)
    readResponse(session)

def usbRead(session, length):
    '''
    READ envelope, then length bytes in, then the acknowledgement
    '''
    sendRequest(session, AW_USB_READ, length)
    data = bulkRecv(session, session.endpointIn, length)
    readResponse(session)
    return data
