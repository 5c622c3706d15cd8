import logging
import os
from datetime import datetime

def setup_logger(name):
    """
    Basic Custom Logging formatting and handling

    Streamlit re-executes the app script on every interaction, so handlers
    are only attached the first time a logger name is seen.

    Parameters
    name (str) : Name of the logger 

    Returns:
    logging.Logger : Configured Logger Instance
    """

    logger = logging.getLogger(name)
    if logger.handlers:
        return logger

    os.makedirs('logs',exist_ok=True)
    logger.setLevel(logging.DEBUG)

    # Configs for how logs will appear in logs/
    file_format = logging.Formatter(
        '%(levelname)s : %(name)s : %(funcName)s : %(lineno)d : %(message)s'
    )

    log_file = f'logs/sinkhole_dashboard_{datetime.now().strftime("%m%d%Y")}'
    file_handler = logging.FileHandler(log_file, encoding='utf-8')
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(file_format)

    # Console logs configs
    console_format = logging.Formatter(
        '%(asctime)s - %(levelname)s - %(message)s'
    )
    console_handler = logging.StreamHandler()
    console_handler.setLevel(logging.INFO)
    console_handler.setFormatter(console_format)


    # Add the config to the Logger obj
    logger.addHandler(file_handler)
    logger.addHandler(console_handler)
    logger.propagate = False

    return logger
