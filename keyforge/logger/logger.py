#!/usr/bin/env python

import json
import logging
from logging import Logger as PythonLogger
from typing import Any, Dict, Type

KEY_EVENT_LOG_LEVEL = 15
logging.addLevelName(KEY_EVENT_LOG_LEVEL, "KEY_EVENT")


class KeyForgeLogger(PythonLogger):
    def __init__(self, name: str):
        super().__init__(name)

    @staticmethod
    def logger_name_for_class(model_class: Type):
        return f"{model_class.__module__}.{model_class.__qualname__}"

    def key_event(self, operation: str, dict_msg: Dict[str, Any], *args, **kwargs):
        """
        Logs a structured record describing a key operation. Only metadata (key type, format, cipher, fingerprint)
        belongs in `dict_msg`; secret values are rendered redacted by `log_encoder`.
        """
        if not self.isEnabledFor(KEY_EVENT_LOG_LEVEL):
            return
        from . import log_encoder

        msg = {"operation": operation, **dict_msg}
        extra = {"dict_msg": msg, "message_type": "key_event"}
        if "extra" in kwargs:
            kwargs["extra"].update(extra)
        else:
            kwargs["extra"] = extra
        self._log(KEY_EVENT_LOG_LEVEL, json.dumps(msg, default=log_encoder), args, **kwargs)
