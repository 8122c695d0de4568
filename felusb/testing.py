'''
In-memory stand-ins for usb1 device objects, used by the unit tests. FakeHandle records
everything written to it and answers reads from a byte stream queued with feed()
'''
import usb1

from felusb.usbSession import FelSession

EP_IN = 0x82
EP_OUT = 0x01

AWUS = b'AWUS' + b'\0' * 9
STATUS = b'\xff\xff\0\0\0\0\0\0'


class FakeEndpoint(object):
    def __init__(self, address, attributes=usb1.TRANSFER_TYPE_BULK):
        self.address = address
        self.attributes = attributes

    def getAddress(self):
        return self.address

    def getAttributes(self):
        return self.attributes


class FakeConfiguration(list):
    '''
    list of interfaces, each a list of settings, each a list of FakeEndpoints
    '''
    def __init__(self, interfaces, value=1):
        super(FakeConfiguration, self).__init__(interfaces)
        self.value = value

    def getConfigurationValue(self):
        return self.value


class FakeDevice(object):
    def __init__(self, bus=1, address=5, vid=0x1f3a, pid=0xefe8, handle=None, configurations=None):
        self.bus = bus
        self.address = address
        self.vid = vid
        self.pid = pid
        self.handle = handle
        self.configurations = configurations if configurations is not None else \
            [FakeConfiguration([[[FakeEndpoint(EP_IN), FakeEndpoint(EP_OUT)]]])]
        self.openError = None

    def getBusNumber(self):
        return self.bus

    def getDeviceAddress(self):
        return self.address

    def getVendorID(self):
        return self.vid

    def getProductID(self):
        return self.pid

    def iterConfigurations(self):
        return iter(self.configurations)

    def open(self):
        if self.openError is not None:
            raise self.openError
        if self.handle is None:
            self.handle = FakeHandle()
        self.handle.device = self
        return self.handle


class FakeContext(object):
    def __init__(self, devices):
        self.devices = devices

    def getDeviceList(self, skip_on_access_error=False, skip_on_error=False):
        return list(self.devices)


class FakeHandle(object):
    def __init__(self, incoming=b'', maxWrite=None):
        self.incoming = bytearray(incoming)
        self.maxWrite = maxWrite
        self.writes = [] # (endpoint, bytes, timeout)
        self.reads = [] # (endpoint, requested length)
        self.calls = []
        self.claimErrors = []
        self.detachError = None
        self.attachError = None
        self.releaseError = None
        self.configurationError = None
        self.writeError = None
        self.configurationValue = 1
        self.device = None
        self.closed = False

    def feed(self, data):
        self.incoming += data

    def bulkWrite(self, endpoint, data, timeout=0):
        if self.writeError is not None:
            raise self.writeError
        data = bytes(data)
        if self.maxWrite is not None:
            data = data[:self.maxWrite]
        self.writes.append((endpoint, data, timeout))
        return len(data)

    def bulkRead(self, endpoint, length, timeout=0):
        self.reads.append((endpoint, length))
        if not self.incoming:
            raise usb1.USBErrorTimeout()
        data = bytes(self.incoming[:length])
        del self.incoming[:length]
        return data

    def claimInterface(self, interface):
        self.calls.append(('claim', interface))
        if self.claimErrors:
            raise self.claimErrors.pop(0)

    def releaseInterface(self, interface):
        self.calls.append(('release', interface))
        if self.releaseError is not None:
            raise self.releaseError

    def detachKernelDriver(self, interface):
        self.calls.append(('detach', interface))
        if self.detachError is not None:
            raise self.detachError

    def attachKernelDriver(self, interface):
        self.calls.append(('attach', interface))
        if self.attachError is not None:
            raise self.attachError

    def getConfiguration(self):
        if self.configurationError is not None:
            raise self.configurationError
        return self.configurationValue

    def getDevice(self):
        return self.device

    def close(self):
        self.calls.append(('close',))
        self.closed = True


def makeSession(incoming=b'', timeout=10000, maxWrite=None):
    '''
    A FelSession over a FakeHandle with endpoints already resolved
    '''
    session = FelSession(FakeHandle(incoming, maxWrite), 1, 5, timeout)
    session.endpointIn = EP_IN
    session.endpointOut = EP_OUT
    return session
