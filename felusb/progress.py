from pydispatch import dispatcher

PROGRESS_UPDATE_SIGNAL = "transferProgress"

class Progress(object):
    '''
    Small class to keep track of transferred bytes and update progress observers on change.
    Pass addProgress as the chunk callback of fel.writeBuffer. Besides the observers, every
    update is sent as PROGRESS_UPDATE_SIGNAL through pydispatch, with info={'done', 'total', 'progress'}
    '''
    def __init__(self, total, progressObservers=None, start=0):
        self.progressObservers = progressObservers if progressObservers is not None else []
        self.total = total
        self.current = start

    def addProgress(self, change):
        self.setProgress(self.current + change)

    def setProgress(self, value):
        self.current = value
        progress = self.getProgress()
        for observer in self.progressObservers:
            observer(progress)
        dispatcher.send(signal=PROGRESS_UPDATE_SIGNAL, info={'done': self.current, 'total': self.total, 'progress': progress}, sender=self)

    def getProgress(self):
        if not self.total:
            return 1.0
        return float(self.current) / self.total

    def isDone(self):
        return self.current >= self.total

    __call__ = addProgress
