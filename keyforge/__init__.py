import logging
from os import path
from typing import Optional

from keyforge.logger.logger import KeyForgeLogger

LOGGER_CLASS_SET = False
_prefix_path = None

logging.setLoggerClass(KeyForgeLogger)


def prefix_path() -> str:
    global _prefix_path
    if _prefix_path is None:
        from os.path import join, realpath
        _prefix_path = realpath(join(__file__, "../../"))
    return _prefix_path


def set_prefix_path(p: str):
    global _prefix_path
    _prefix_path = p


def template_path(template_filename: str) -> str:
    return path.realpath(path.join(__file__, "../templates", template_filename))


def get_logging_conf(conf_filename: str = "keyforge_logs.yml"):
    """
    Reads the logging configuration from `conf/`, falling back to the packaged template.
    """
    import io
    from os.path import join
    from typing import Dict

    from ruamel.yaml import YAML

    file_path: str = join(prefix_path(), "conf", conf_filename)
    if not path.exists(file_path):
        file_path = template_path("keyforge_logs_TEMPLATE.yml")
    yaml_parser: YAML = YAML()
    with open(file_path) as fd:
        yml_source: str = fd.read()
        yml_source = yml_source.replace("$PROJECT_DIR", prefix_path())
        io_stream: io.StringIO = io.StringIO(yml_source)
        config_dict: Dict = yaml_parser.load(io_stream)
        return config_dict


def init_logging(conf_filename: str = "keyforge_logs.yml",
                 override_log_level: Optional[str] = None):
    import logging.config

    global LOGGER_CLASS_SET
    if not LOGGER_CLASS_SET:
        logging.setLoggerClass(KeyForgeLogger)
        LOGGER_CLASS_SET = True

    # Do not raise exceptions during log handling
    logging.raiseExceptions = False

    config_dict = get_logging_conf(conf_filename)
    if override_log_level is not None and "loggers" in config_dict:
        for logger in config_dict["loggers"]:
            config_dict["loggers"][logger]["level"] = override_log_level.upper()
    logging.config.dictConfig(config_dict)
