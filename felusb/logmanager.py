import logging
import os
import errno
import calendar
import time
from os import path

from felusb import config

class LogManager( object ):
	'''
	Keeps one file handler per log. The global log collects everything under the 'felusb' logger,
	instanced logs are per device session and named after the bus and address of the device
	'''
	logfiles = {}
	formatter = logging.Formatter( "%(asctime)s %(levelname)s %(message)s" )

	@staticmethod
	def setup():
		logspath = config.LOG_DIR
		if not path.exists( logspath ):
			try:
				os.makedirs( logspath )
			except OSError as exc:
				if exc.errno == errno.EEXIST and os.path.isdir( logspath ):
					pass
				else: raise
		return logspath

	@staticmethod
	def isLoggingToFile():
		return "global" in LogManager.logfiles

	@staticmethod
	def get_global_log():
		if not "global" in LogManager.logfiles:
			logspath = LogManager.setup()
			logfilename = "felusb.log"
			handler = logging.FileHandler( path.join( logspath, logfilename ) )
			handler.setFormatter( LogManager.formatter )

			log = logging.getLogger( "felusb" )
			log.addHandler( handler )
			log.setLevel( logging.DEBUG if config.VERBOSE else logging.INFO )
			LogManager.logfiles[ "global" ] = {
				"handler" : handler,
				"log" : log,
				"filename" : logfilename
			}

		return LogManager.logfiles[ "global" ][ "log" ]

	@staticmethod
	def get_instanced_log( id ):
		id = str( id )
		if not id in LogManager.logfiles:
			logspath = LogManager.setup()
			curtime = calendar.timegm( time.gmtime() )

			logfilename = "felusb-{1}-{0}.log".format( curtime, id )
			handler = logging.FileHandler( path.join( logspath, logfilename ) )
			handler.setFormatter( LogManager.formatter )

			log = logging.getLogger( "felusb." + id ) #child of the global log, so records also land there
			log.addHandler( handler )
			log.setLevel( logging.DEBUG if config.VERBOSE else logging.INFO )
			LogManager.logfiles[ id ] = {
				"handler" : handler,
				"log" : log,
				"filename" : logfilename
			}
		return LogManager.logfiles[ id ][ "log" ]

	@staticmethod
	def close_instanced_log( id ):
		id = str( id )
		if id in LogManager.logfiles:
			entry = LogManager.logfiles.pop( id )
			entry[ "log" ].removeHandler( entry[ "handler" ] )
			entry[ "handler" ].close()

	@staticmethod
	def close_all_logs():
		for k in list( LogManager.logfiles.keys() ):
			LogManager.close_instanced_log( k )
