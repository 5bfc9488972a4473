"""Exceptions raised by cortxt."""

class CortxtError(Exception): ...
class InvalidRootError(CortxtError): ...
class ConfigFileError(CortxtError): ...
class OutputError(CortxtError): ...
class FileReadError(CortxtError): ...
