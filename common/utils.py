import datetime
import time

import pytz


class Timer:
    def __init__(self, label):
        self.label = label

    def __enter__(self):
        self.start_time = time.time()

    def __exit__(self, exc_type, exc_val, exc_tb):
        elapsed_time = time.time() - self.start_time
        print("{}: {:.2f} seconds".format(self.label, elapsed_time))


def utc_now() -> datetime.datetime:
    return datetime.datetime.now(pytz.UTC)


def truncate_string(input_string, max_length=500):
    if input_string is None:
        return "None"
    truncated_string = input_string[:max_length]

    # Append "(truncated)" if the string is longer
    if len(input_string) > max_length:
        truncated_string += " ... (truncated for logging readability)"
    return truncated_string
