'''
FEL commands in Python

Each command is a 16 byte FEL request sent as the payload of a WRITE envelope, an optional
payload exchange, and an 8 byte status block read at the end.
'''
import logging
from struct import unpack, pack, unpack_from, calcsize
from collections import namedtuple

from felusb.awusb import usbWrite, usbRead
from felusb.errors import FelUsbError
log = logging.getLogger('felusb')

FEL_VERSION = 0x001
FEL_DOWNLOAD = 0x101 # (Write data to the device)
FEL_RUN = 0x102 # (Execute code)
FEL_UPLOAD = 0x103 # (Read data from the device)

FEL_REQUEST_FORMAT = '<IIII'
FEL_REQUEST_LENGTH = calcsize(FEL_REQUEST_FORMAT) # 16

STATUS_BUFFER_LENGTH = 8 # AWFELStatusResponse

FEL_VERSION_FORMAT = '<8sIIHBBIII'
FEL_VERSION_SIZE = calcsize(FEL_VERSION_FORMAT) # 32
FelVersion = namedtuple('FelVersion', 'signature soc_id unknown0a protocol unknown12 unknown13 scratchpad pad0 pad1')

# Other SoCs can be supported by adding their scratch area and SID address
SRAM_INFO_MAP = {
    0x1623: {'name': 'A10', 'scratch_addr': 0x1000, 'sid_addr': 0x01C23800},
    0x1625: {'name': 'A13', 'scratch_addr': 0x1000, 'sid_addr': 0x01C23800},
    0x1651: {'name': 'A20', 'scratch_addr': 0x1000, 'sid_addr': 0x01C23800},
    0x1667: {'name': 'A33', 'scratch_addr': 0x1000, 'sid_addr': 0x01C23800},
    0x1680: {'name': 'H3', 'scratch_addr': 0x1000, 'sid_addr': 0x01C14200},
    0x1689: {'name': 'A64', 'scratch_addr': 0x11000, 'sid_addr': 0x01C14200},
}

# Low level calls
def packRequest(requestType, address=0, length=0):
    return pack(FEL_REQUEST_FORMAT, requestType, address & 0xFFFFFFFF, length & 0xFFFFFFFF, 0)

def unpackVersion(data):
    '''
    Decode the version reply. The SoC id arrives shifted left by 8 bits, and only the
    low 16 bits of the scratchpad address are meaningful
    '''
    if len(data) < FEL_VERSION_SIZE:
        raise FelUsbError('FEL version reply too short: {} bytes'.format(len(data)))
    version = FelVersion._make(unpack(FEL_VERSION_FORMAT, data[:FEL_VERSION_SIZE]))
    return version._replace(soc_id=(version.soc_id >> 8) & 0xFFFF,
                            scratchpad=version.scratchpad & 0xFFFF)

def _request(session, requestType, address=0, length=0):
    usbWrite(session, packRequest(requestType, address, length))

def _status(session):
    session.lastStatus = usbRead(session, STATUS_BUFFER_LENGTH)
    return session.lastStatus

#####################################################################
def read(session, address, length):
    _request(session, FEL_UPLOAD, address, length)
    data = usbRead(session, length)
    _status(session)
    return data

def write(session, data, address):
    '''
    Write without progress notifications. Returns the FEL status block
    '''
    return writeBuffer(session, data, address)

def writeBuffer(session, data, address, progress=None):
    '''
    Write data to address.
    :param progress: optional callable, called with the byte count of every chunk sent. Useful
        for large images, it switches to smaller chunks
    '''
    _request(session, FEL_DOWNLOAD, address, len(data))
    usbWrite(session, data, progress)
    return _status(session)

def exe(session, address):
    _request(session, FEL_RUN, address)
    return _status(session)

####################################################################
def getVersion(session):
    _request(session, FEL_VERSION)
    data = usbRead(session, FEL_VERSION_SIZE)
    version = unpackVersion(data)
    _status(session)
    log.debug('FEL version: soc {:04x} protocol {} scratchpad {:#x}'.format(version.soc_id, version.protocol, version.scratchpad))
    return version

def readl_n(session, address, count, scratchAddress):
    '''
    Read count 32 bit words starting at address. Memory mapped registers (like the SID)
    need word accesses, so this uploads a small ARM routine to the scratch area which
    loads one word, stores it after itself and advances its pointer on every run
    '''
    arm_code = [
        0xe59f0010, # ldr r0, [pc, #16]
        0xe5901000, # ldr r1, [r0]
        0xe58f100c, # str r1, [pc, #12]
        0xe2800004, # add r0, r0, #4
        0xe58f0000, # str r0, [pc]
        0xe12fff1e, # bx lr
        address
    ]
    codeBuffer = pack('<' + str(len(arm_code)) + 'I', *arm_code)
    write(session, codeBuffer, scratchAddress)

    result = []
    for _ in range(count):
        exe(session, scratchAddress)
        val = read(session, scratchAddress + len(codeBuffer), 4)
        result.append(unpack_from('<I', val)[0])

    return result

def getSid(session):
    version = getVersion(session)
    if version.soc_id not in SRAM_INFO_MAP:
        raise FelUsbError('no SID information for SoC {:04x}'.format(version.soc_id))
    sram_info = SRAM_INFO_MAP[version.soc_id]
    return readl_n(session, sram_info['sid_addr'], 4, sram_info['scratch_addr'])

def getSerialNumber(session):
    sid = getSid(session)
    return '{:08x}{:08x}'.format(sid[0], sid[3])

####################################################################
# Names used by callers that think in terms of memory operations
def readMemory(session, address, length):
    return read(session, address, length)

def _sized(data, length):
    if length is None:
        return data
    if length > len(data):
        raise ValueError('length {} exceeds buffer of {} bytes'.format(length, len(data)))
    return data[:length]

def writeMemory(session, address, data, length=None):
    return write(session, _sized(data, length), address)

def writeMemoryWithProgress(session, address, data, length=None, onChunk=None):
    return writeBuffer(session, _sized(data, length), address, onChunk)

def execute(session, address):
    return exe(session, address)
