'''
Opening an Allwinner device in FEL mode: find it, claim its interface, locate the bulk endpoints.

    init()
    with openFelDevice() as session:
        version = fel.getVersion(session)
    shutdown()
'''
import sys
import time
import logging
import usb1

from felusb import config
from felusb.logmanager import LogManager
from felusb.errors import usbError, FelUsbError, DeviceNotFound, PermissionDenied, DeviceMismatch, \
    ClaimFailed, EndpointNotFound
log = logging.getLogger('felusb')

_context = None

def init(logToFile=None):
    '''
    Open the process wide libusb context. Call once before opening devices
    :param logToFile: also log to files under config.LOG_DIR, defaults to config.LOG_TO_FILE
    '''
    global _context
    if logToFile is None:
        logToFile = config.LOG_TO_FILE
    if logToFile:
        LogManager.get_global_log()
    if _context is None:
        context = usb1.USBContext()
        try:
            context.open()
        except usb1.USBError as e:
            usbError(e, 'libusb_init()', FelUsbError)
        _context = context
    return _context

def shutdown(session=None):
    '''
    Close session, if given, and then the libusb context
    '''
    global _context
    if session is not None:
        session.close()
    if _context is not None:
        _context.close()
        _context = None
    LogManager.close_all_logs()

def getContext():
    if _context is None:
        raise FelUsbError('USB not initialized, call init() first')
    return _context


class FelSession(object):
    '''
    One open FEL device. Owns the libusb handle; endpoints are resolved once by claim()
    '''
    __slots__ = ('handle', 'endpointIn', 'endpointOut', 'ifaceDetached', 'timeout',
                 'busNumber', 'deviceAddress', 'usable', 'lastStatus', 'claimed') #using slots prevents bugs where members are created by accident

    def __init__(self, handle, busNumber=None, deviceAddress=None, timeout=config.USB_TIMEOUT):
        self.handle = handle
        self.endpointIn = 0
        self.endpointOut = 0
        self.claimed = False
        self.ifaceDetached = False
        self.timeout = timeout
        self.busNumber = busNumber
        self.deviceAddress = deviceAddress
        self.usable = True
        self.lastStatus = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_value, tb):
        self.close()
        return False

    def __repr__(self):
        return 'FelSession(bus={}, address={}, in={:#04x}, out={:#04x})'.format(
            self.busNumber, self.deviceAddress, self.endpointIn, self.endpointOut)

    def logId(self):
        return '{:03d}-{:03d}'.format(self.busNumber or 0, self.deviceAddress or 0)

    def checkUsable(self):
        if self.handle is None:
            raise FelUsbError('FEL session is closed')
        if not self.usable:
            raise FelUsbError('FEL session failed earlier, close it and open the device again')
        if not (self.endpointIn and self.endpointOut):
            raise EndpointNotFound('FEL session has no endpoints')

    def claim(self):
        '''
        Claim the data interface and find the endpoints. On Linux, if the kernel has a driver
        bound to the interface, detach it and try once more
        '''
        try:
            self.handle.claimInterface(config.CHIP_USB_INTERFACE)
        except usb1.USBError as e:
            if not sys.platform.startswith('linux'):
                usbError(e, 'libusb_claim_interface()', ClaimFailed)
            log.info('claiming interface failed ({}), detaching kernel driver'.format(e))
            try:
                self.handle.detachKernelDriver(config.CHIP_USB_INTERFACE)
            except usb1.USBError as detachError:
                usbError(detachError, 'libusb_detach_kernel_driver()', fatal=False)
            self.ifaceDetached = True
            try:
                self.handle.claimInterface(config.CHIP_USB_INTERFACE)
            except usb1.USBError as retryError:
                usbError(retryError, 'libusb_claim_interface()', ClaimFailed)
        self.claimed = True

        self.findEndpoints()

    def findEndpoints(self):
        '''
        Record the first bulk IN and the first bulk OUT endpoint of the active configuration
        '''
        try:
            configValue = self.handle.getConfiguration()
            device = self.handle.getDevice()
            configurations = [c for c in device.iterConfigurations() if c.getConfigurationValue() == configValue]
        except usb1.USBError as e:
            usbError(e, 'FAILED to get FEL mode endpoint addresses!', EndpointNotFound)
        if not configurations:
            raise EndpointNotFound('FAILED to get FEL mode endpoint addresses! no active configuration {}'.format(configValue))

        endpointIn = endpointOut = 0
        for interface in configurations[0]:
            for setting in interface:
                for endpoint in setting:
                    if endpoint.getAttributes() & usb1.TRANSFER_TYPE_MASK != usb1.TRANSFER_TYPE_BULK:
                        continue
                    address = endpoint.getAddress()
                    if address & usb1.ENDPOINT_DIR_MASK == usb1.ENDPOINT_IN:
                        endpointIn = endpointIn or address
                    else:
                        endpointOut = endpointOut or address
        if not (endpointIn and endpointOut):
            raise EndpointNotFound('FAILED to get FEL mode endpoint addresses! in={:#04x} out={:#04x}'.format(endpointIn, endpointOut))
        self.endpointIn = endpointIn
        self.endpointOut = endpointOut
        log.debug('FEL endpoints in={:#04x} out={:#04x}'.format(endpointIn, endpointOut))

    def release(self):
        if self.claimed:
            self.claimed = False
            try:
                self.handle.releaseInterface(config.CHIP_USB_INTERFACE)
            except usb1.USBError as e:
                usbError(e, 'libusb_release_interface()', fatal=False) # unplugging can cause weird state, so just report it
        if self.ifaceDetached:
            try:
                self.handle.attachKernelDriver(config.CHIP_USB_INTERFACE)
            except usb1.USBError as e:
                usbError(e, 'libusb_attach_kernel_driver()', fatal=False)
            self.ifaceDetached = False

    def close(self):
        '''
        Release the interface, give the interface back to the kernel driver if we took it, close the handle
        '''
        if self.handle is None:
            return
        if self.claimed or self.ifaceDetached:
            self.release()
        self.handle.close()
        self.handle = None
        self.usable = False
        LogManager.close_instanced_log(self.logId())


def _isMatch(device, vid, pid):
    return device.getVendorID() == vid and device.getProductID() == pid

def _openHandle(device):
    try:
        return device.open()
    except usb1.USBErrorAccess as e:
        usbError(e, "ERROR: You don't have permission to access Allwinner USB FEL device", PermissionDenied)
    except usb1.USBError as e:
        usbError(e, 'libusb_open()', PermissionDenied)

def openFelDevice(busNumber=-1, deviceAddress=-1, vendorId=config.FEL_VENDOR_ID, productId=config.FEL_PRODUCT_ID,
                  timeout=config.USB_TIMEOUT, context=None):
    '''
    Open a FEL device and claim it.
    :param busNumber: with deviceAddress, pins a specific device. Negative means any device matching vendorId:productId
    :param deviceAddress: see busNumber
    :param timeout: bulk transfer timeout of the session, in milliseconds
    :param context: usb1.USBContext to use, defaults to the one from init()
    '''
    if context is None:
        context = getContext()

    found = None
    if busNumber < 0 or deviceAddress < 0:
        # we don't care for a specific USB device, take the first one that matches VID/PID
        for device in context.getDeviceList(skip_on_error=True):
            if _isMatch(device, vendorId, productId):
                found = device
                break
        if found is None:
            message = 'ERROR: Allwinner USB FEL device {:04x}:{:04x} not found!'.format(vendorId, productId)
            log.error(message)
            raise DeviceNotFound(message)
    else:
        for device in context.getDeviceList(skip_on_error=True):
            if device.getBusNumber() == busNumber and device.getDeviceAddress() == deviceAddress:
                if not _isMatch(device, vendorId, productId):
                    message = 'ERROR: Bus {:03d} Device {:03d} not a FEL device (expected {:04x}:{:04x}, got {:04x}:{:04x})'.format(
                        busNumber, deviceAddress, vendorId, productId, device.getVendorID(), device.getProductID())
                    log.error(message)
                    raise DeviceMismatch(message)
                found = device
                break
        if found is None:
            message = 'ERROR: Bus {:03d} Device {:03d} not found in libusb device list'.format(busNumber, deviceAddress)
            log.error(message)
            raise DeviceNotFound(message)

    handle = _openHandle(found)
    session = FelSession(handle, found.getBusNumber(), found.getDeviceAddress(), timeout)
    try:
        session.claim() # claim interface, detect USB endpoints
    except Exception:
        session.close()
        raise
    log.info('opened FEL device on bus {:03d} device {:03d}'.format(session.busNumber, session.deviceAddress))
    if LogManager.isLoggingToFile():
        LogManager.get_instanced_log(session.logId()).info('opened {!r}'.format(session))
    return session

def listDevices(vendorId=config.FEL_VENDOR_ID, productId=config.FEL_PRODUCT_ID, context=None):
    '''
    (bus, address) of every attached device with these identifiers
    '''
    if context is None:
        context = getContext()
    return [(device.getBusNumber(), device.getDeviceAddress())
            for device in context.getDeviceList(skip_on_access_error=True, skip_on_error=True)
            if _isMatch(device, vendorId, productId)]

def waitForDevice(vendorId=config.FEL_VENDOR_ID, productId=config.FEL_PRODUCT_ID, timeout=config.POLLING_TIMEOUT,
                  pollInterval=config.POLLING_INTERVAL, context=None):
    '''
    Poll until a matching device shows up or timeout seconds pass. Returns the list from listDevices, empty on timeout
    '''
    deadline = time.time() + timeout
    while True:
        devices = listDevices(vendorId, productId, context)
        if devices:
            log.info('Found FEL devices: {}'.format(len(devices)))
            return devices
        if time.time() >= deadline:
            log.error('Timed out while waiting for usb device {:04x}:{:04x}'.format(vendorId, productId))
            return devices
        time.sleep(pollInterval)
