"""Static sector classification for common tickers."""

from typing import Optional

OTHER_SECTOR = "Other"


def _sector(name: str, tickers: str) -> dict[str, str]:
    return {ticker: name for ticker in tickers.split()}


# Known without a provider call; providers fill in the rest
SECTOR_MAPPING: dict[str, str] = {
    **_sector(
        "Technology",
        "AAPL MSFT GOOGL GOOG META AMZN NVDA AMD INTC CRM ORCL ADBE CSCO IBM QCOM TXN "
        "AVGO NOW INTU AMAT MU LRCX KLAC SNPS CDNS MRVL NXPI ASML TSM ARM PLTR SNOW",
    ),
    **_sector(
        "Healthcare",
        "JNJ UNH PFE ABBV MRK LLY TMO ABT DHR BMY AMGN GILD MDT CVS ISRG VRTX "
        "REGN SYK ZTS BDX CI HUM ELV MCK",
    ),
    **_sector(
        "Financial",
        "JPM BAC WFC GS MS C BLK SCHW AXP SPGI CME ICE USB PNC TFC COF "
        "BK STT AIG MET PRU AFL ALL TRV V MA PYPL SQ",
    ),
    **_sector(
        "Consumer Discretionary",
        "TSLA HD NKE MCD SBUX LOW TJX BKNG MAR CMG YUM DPZ ORLY AZO ROST "
        "DHI LEN PHM F GM ABNB",
    ),
    **_sector(
        "Consumer Staples",
        "PG KO PEP COST WMT PM MO MDLZ CL KMB GIS K HSY SJM CAG KHC STZ TAP",
    ),
    **_sector(
        "Energy",
        "XOM CVX COP EOG SLB MPC PSX VLO OXY PXD DVN HAL BKR FANG HES MRO TTE BP SHEL RDS",
    ),
    **_sector(
        "Industrials",
        "CAT DE BA HON UNP RTX LMT GE MMM UPS FDX CSX NSC WM RSG EMR ITW ETN PH ROK",
    ),
    **_sector("Materials", "LIN APD SHW ECL FCX NEM NUE DOW DD PPG VMC MLM"),
    **_sector("Utilities", "NEE DUK SO D AEP EXC SRE XEL ED WEC ES AWK"),
    **_sector("Real Estate", "PLD AMT CCI EQIX SPG PSA O WELL DLR AVB EQR VTR"),
    **_sector(
        "Communication", "DIS NFLX CMCSA T VZ TMUS CHTR EA TTWO ATVI WBD PARA"
    ),
    # ETFs by focus
    **_sector("Index ETF", "SPY VOO IVV VTI"),
    **_sector("Tech ETF", "QQQ VGT XLK ARKK"),
    **_sector("Financial ETF", "XLF VFH KRE"),
    **_sector("Energy ETF", "XLE VDE OIH"),
    **_sector("Healthcare ETF", "XLV VHT IBB"),
    **_sector("Consumer ETF", "XLY VCR XLP VDC"),
    **_sector("Industrial ETF", "XLI VIS"),
    **_sector("Utilities ETF", "XLU VPU"),
    **_sector("Real Estate ETF", "XLRE VNQ"),
    **_sector("Materials ETF", "XLB VAW"),
    **_sector("Bond ETF", "BND AGG TLT LQD HYG JNK VCIT VCSH"),
    **_sector("Commodity ETF", "GLD SLV IAU"),
    **_sector("Intl ETF", "EFA IEFA VEA"),
    **_sector("Emerging ETF", "VWO EEM IEMG"),
    **_sector("Crypto", "BTC ETH SOL ADA DOGE XRP DOT AVAX GBTC ETHE BITO"),
    # European listings
    "MC.PA": "Consumer Discretionary",
    "OR.PA": "Consumer Staples",
    "SAN.PA": "Healthcare",
    "AIR.PA": "Industrials",
    "TTE.PA": "Energy",
    "BNP.PA": "Financial",
    "ASML.AS": "Technology",
    "ADYEN.AS": "Technology",
    "PRX.AS": "Technology",
    "SAP.DE": "Technology",
    "SIE.DE": "Industrials",
    "ALV.DE": "Financial",
    "NESN.SW": "Consumer Staples",
    "ROG.SW": "Healthcare",
    "NOVN.SW": "Healthcare",
    "SHEL.L": "Energy",
    "AZN.L": "Healthcare",
    "HSBA.L": "Financial",
}


def is_known_sector(sector: Optional[str]) -> bool:
    """False for blank sectors and the "Other" placeholder."""
    return bool(sector) and sector != OTHER_SECTOR


def lookup_sector(symbol: str, registry_sector: Optional[str] = None) -> str:
    """
    Sector for a symbol.

    A sector learned from a provider (``registry_sector``) wins over the
    static mapping; unknown symbols are "Other".

    Examples:
        >>> lookup_sector("aapl")
        'Technology'
        >>> lookup_sector("AAPL", "Consumer Electronics")
        'Consumer Electronics'
        >>> lookup_sector("ZZZZ", "Other")
        'Other'
    """
    if registry_sector and is_known_sector(registry_sector):
        return registry_sector
    return SECTOR_MAPPING.get(symbol.strip().upper(), OTHER_SECTOR)
