import datetime


class Logger:
    '''Provides functionality for writing messages to a log file.'''

    def __init__(self, filename: str) -> None:
        self.filename = filename

    def clear(self) -> None:
        with open(self.filename, 'w') as fp:
            fp.write('')

    def log(self, msg: str) -> None:
        timestamp = str(datetime.datetime.now())
        with open(self.filename, 'a') as fp:
            fp.write(f'{timestamp}: {msg}\n')


class SimLogger:
    '''Provides functionality for writing simulation data to a CSV file.
    Rows are buffered and flushed every write_freq calls to log(), and on
    close().'''

    def __init__(self, filename: str, write_freq: int=1000) -> None:
        self.filename = filename
        self.write_freq = write_freq
        self.data = []
        self.write_head = True
        self.iteration = 0

    def clear(self, overwrite: bool=True) -> None:
        with open(self.filename, 'w' if overwrite else 'a') as fp:
            fp.write('')
        self.data = []
        self.write_head = True
        self.iteration = 0

    def _write_data(self):
        with open(self.filename, 'a') as fp:
            fp.write('\n'.join(self.data) + '\n')
        self.data = []

    def log(self, obs, action, reward, done, step) -> None:
        if self.write_head:
            header = 'timestamp,iteration,epoch'
            header += ',' + ','.join(f'"{key}"' for key in obs.keys())
            header += ',' + ','.join(f'"{key}"' for key in action.keys())
            header += ',' + 'reward'
            header += ',' + 'done'
            self.data.append(header)
            self.write_head = False
        row = str(datetime.datetime.now())
        row += ',' + str(self.iteration)
        row += ',' + str(step)
        row += ',' + ','.join(map(str, obs.values()))
        row += ',' + ','.join(map(str, action.values()))
        row += ',' + str(reward)
        row += ',' + str(done)
        self.data.append(row)
        self.iteration += 1
        if len(self.data) >= self.write_freq:
            self._write_data()

    def log_free(self, text: str) -> None:
        self.data.append(text)

    def close(self) -> None:
        if self.data:
            self._write_data()
