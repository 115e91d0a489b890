"""
Known Exchange Wallets

Registry of public exchange addresses used to tell exchange inflows from
outflows. The list is not exhaustive and exchanges rotate addresses, so
unmatched addresses are treated as unknown, never as non-exchange.
"""

import logging
from typing import Dict, Iterable, Optional, Tuple

from ..models import WalletInfo, utcnow

logger = logging.getLogger("signal_radar.whales.wallets")

# (address, chain, owner, exchange)
KNOWN_EXCHANGE_WALLETS: Tuple[Tuple[str, str, str, str], ...] = (
    # Bitcoin
    ("1NDyJtNTjmwk5xPNhjgAMu4HDHigtobu1s", "bitcoin", "Binance Cold Wallet 1", "BINANCE"),
    ("3LYJfcfHPXYJreMsASk2jkn69LWEYKzexb", "bitcoin", "Binance Cold Wallet 8", "BINANCE"),
    ("bc1qm34lsc65zpw79lxes69zkqmk6ee3ewf0j77s3h", "bitcoin", "Binance Hot Wallet", "BINANCE"),
    ("3LCGsSmfr24demGvriN4e3D3Lbrkn6Qh8e", "bitcoin", "Coinbase Cold Wallet", "COINBASE"),
    ("36PrZ1KHYMpqSyAQXSG8VwbUiq2EogxLo2", "bitcoin", "Coinbase Hot Wallet 1", "COINBASE"),
    ("3FHNBLobJnbCTFTVakh5TXmEneyf5PT61B", "bitcoin", "Kraken Exchange", "KRAKEN"),
    ("bc1qgdjqv0av3q56jvd82tkdjpy7gdp9ut8tlqmgrpmv24sq90ecnvqqjwvw97", "bitcoin", "Kraken Cold Wallet", "KRAKEN"),
    ("3D2oetdNuZUqQHPJmcMDDHYoqkyNVsFk9r", "bitcoin", "Bitfinex Cold Wallet", "BITFINEX"),
    ("3Nxwenay9Z8Lc9JBiywExpnEFiLp6Afp8v", "bitcoin", "Huobi Cold Wallet", "HUOBI"),
    # Ethereum
    ("0xF977814e90dA44bFA03b6295A0616a897441aceC", "ethereum", "Binance Hot Wallet", "BINANCE"),
    ("0x28C6c06298d514Db089934071355E5743bf21d60", "ethereum", "Binance Cold Wallet 14", "BINANCE"),
    ("0x21a31Ee1afC51d94C2eFcCAa2092aD1028285549", "ethereum", "Binance Cold Wallet 16", "BINANCE"),
    ("0x71660c4005BA85c37ccec55d0C4493E66Fe775d3", "ethereum", "Coinbase Cold Wallet", "COINBASE"),
    ("0x503828976D22510aad0201ac7EC88293211D23Da", "ethereum", "Coinbase Hot Wallet", "COINBASE"),
    ("0x2910543Af39abA0Cd09dBb2D50200b3E800A63D2", "ethereum", "Kraken Hot Wallet", "KRAKEN"),
    ("0x267be1C1D684F78cb4F6a176C4911b741E4Ffdc0", "ethereum", "Kraken Cold Wallet", "KRAKEN"),
    ("0x876EabF441B2EE5B5b0554Fd502a8E0600950cFa", "ethereum", "Bitfinex Cold Wallet", "BITFINEX"),
    ("0x6748F50f686bfbcA6Fe8ad62b22228b87F31ff2b", "ethereum", "Huobi Hot Wallet", "HUOBI"),
    ("0xAB5C66752a9e8167967685F1450532fB96d5d24f", "ethereum", "Huobi Cold Wallet", "HUOBI"),
    ("0x98ec059Dc3aDfBdd63429454aEB0c990FDA4a1A5", "ethereum", "OKX Hot Wallet", "OKX"),
    ("0x236F9F97e0E62388479bf9E5BA4889e46B0273C3", "ethereum", "OKX Cold Wallet", "OKX"),
)


def normalize_address(address: str, chain: str) -> str:
    """EVM addresses are case-insensitive (checksum casing is cosmetic)."""
    address = (address or "").strip()
    if chain == "ethereum":
        return address.lower()
    return address


class WalletRegistry:
    """
    Address -> owner lookup with per-wallet activity counters.

    identify() bumps tx_count and last_seen on every hit.
    """

    def __init__(self, wallets: Optional[Iterable[WalletInfo]] = None):
        self._wallets: Dict[Tuple[str, str], WalletInfo] = {}
        if wallets is None:
            wallets = (
                WalletInfo(address=address, chain=chain, owner=owner, owner_type="exchange", exchange=exchange)
                for address, chain, owner, exchange in KNOWN_EXCHANGE_WALLETS
            )
        for wallet in wallets:
            self.register(wallet)

    def __len__(self) -> int:
        return len(self._wallets)

    def register(self, wallet: WalletInfo) -> None:
        key = (wallet.chain, normalize_address(wallet.address, wallet.chain))
        self._wallets[key] = wallet

    def lookup(self, address: str, chain: str) -> Optional[WalletInfo]:
        if not address or address == "Unknown":
            return None
        return self._wallets.get((chain, normalize_address(address, chain)))

    def identify(self, address: str, chain: str) -> Optional[WalletInfo]:
        wallet = self.lookup(address, chain)
        if wallet is not None:
            wallet.tx_count += 1
            wallet.last_seen = utcnow()
            logger.debug("Matched %s wallet %s (%s)", chain, wallet.owner, address)
        return wallet
