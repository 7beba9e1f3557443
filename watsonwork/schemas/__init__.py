from .workspace import Credential, NlpInformation

__all__ = ["Credential", "NlpInformation"]
