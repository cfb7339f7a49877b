"""
Errors raised while issuing certificates.

Every failure carries the stage it happened in so a fatal startup log points
at the step that broke:

- serial            RandomSourceError
- key-gen           KeyGenerationError
- parent-key-parse  ParentKeyDecodeError
- sign              SigningError
- marshal           EncodingError
"""


class CertSignError(Exception):
    stage = "unknown"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def __str__(self):
        return f"[{self.stage}] {self.message}"


class RandomSourceError(CertSignError):
    stage = "serial"


class KeyGenerationError(CertSignError):
    stage = "key-gen"


class ParentKeyDecodeError(CertSignError):
    stage = "parent-key-parse"


class SigningError(CertSignError):
    stage = "sign"


class EncodingError(CertSignError):
    stage = "marshal"
