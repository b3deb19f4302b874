from .base import RequestSigner, NoopSigner
from .apikey import ApiKeyQuerySigner, ApiKeyHeaderSigner
from .token import (
    TokenCache,
    TokenProvider,
    ClientCredentialsTokenProvider,
    IbmIamTokenProvider,
    GoogleServiceAccountTokenProvider,
    AliyunNlsTokenProvider,
    BearerTokenSigner,
)
from .signed_request import IflytekSigner, TencentSigner, AliyunPopSigner
from .sigv4 import SigV4Signer, derive_signing_key
from .aksk import HuaweiSisSigner, VolcengineTokenSigner
from .encoding import percent_encode
