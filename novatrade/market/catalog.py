from __future__ import annotations

from dataclasses import dataclass
from typing import List


@dataclass(frozen=True)
class CatalogEntry:
    """Static metadata for one instrument. price is the nominal seed price."""
    symbol: str
    name: str
    price: float
    sector: str


# 50 large-cap NSE stocks.
DEFAULT_CATALOG: List[CatalogEntry] = [
    CatalogEntry("TCS", "Tata Consultancy Services", 3480.00, "IT"),
    CatalogEntry("INFY", "Infosys Ltd", 1425.80, "IT"),
    CatalogEntry("HDFCBANK", "HDFC Bank", 1512.25, "Finance"),
    CatalogEntry("RELIANCE", "Reliance Industries", 2355.50, "Energy"),
    CatalogEntry("TATAMOTORS", "Tata Motors", 960.40, "Auto"),
    CatalogEntry("ITC", "ITC Ltd", 445.50, "FMCG"),
    CatalogEntry("SBIN", "State Bank of India", 575.20, "Finance"),
    CatalogEntry("BAJFINANCE", "Bajaj Finance", 7200.00, "Finance"),
    CatalogEntry("HINDUNILVR", "Hindustan Unilever", 2500.00, "FMCG"),
    CatalogEntry("ICICIBANK", "ICICI Bank", 950.00, "Finance"),
    CatalogEntry("BHARTIARTL", "Bharti Airtel", 880.00, "Telecom"),
    CatalogEntry("LT", "Larsen & Toubro", 2900.00, "Construction"),
    CatalogEntry("AXISBANK", "Axis Bank", 980.00, "Finance"),
    CatalogEntry("KOTAKBANK", "Kotak Mahindra Bank", 1750.00, "Finance"),
    CatalogEntry("MARUTI", "Maruti Suzuki", 10500.00, "Auto"),
    CatalogEntry("SUNPHARMA", "Sun Pharma", 1150.00, "Pharma"),
    CatalogEntry("TITAN", "Titan Company", 3100.00, "Consumer"),
    CatalogEntry("ULTRACEMCO", "UltraTech Cement", 8500.00, "Construction"),
    CatalogEntry("WIPRO", "Wipro Ltd", 410.00, "IT"),
    CatalogEntry("TATASTEEL", "Tata Steel", 130.00, "Metal"),
    CatalogEntry("ASIANPAINT", "Asian Paints", 3200.00, "Consumer"),
    CatalogEntry("HCLTECH", "HCL Technologies", 1250.00, "IT"),
    CatalogEntry("NTPC", "NTPC Ltd", 240.00, "Energy"),
    CatalogEntry("POWERGRID", "Power Grid Corp", 210.00, "Energy"),
    CatalogEntry("M&M", "Mahindra & Mahindra", 1600.00, "Auto"),
    CatalogEntry("ADANIENT", "Adani Enterprises", 2500.00, "Energy"),
    CatalogEntry("ADANIGREEN", "Adani Green", 950.00, "Energy"),
    CatalogEntry("ADANIPORTS", "Adani Ports", 820.00, "Infrastructure"),
    CatalogEntry("COALINDIA", "Coal India", 350.00, "Energy"),
    CatalogEntry("ONGC", "ONGC", 190.00, "Energy"),
    CatalogEntry("BPCL", "BPCL", 350.00, "Energy"),
    CatalogEntry("GRASIM", "Grasim Industries", 1950.00, "Construction"),
    CatalogEntry("JSWSTEEL", "JSW Steel", 820.00, "Metal"),
    CatalogEntry("HINDALCO", "Hindalco Industries", 480.00, "Metal"),
    CatalogEntry("DRREDDY", "Dr Reddys Labs", 5600.00, "Pharma"),
    CatalogEntry("CIPLA", "Cipla", 1200.00, "Pharma"),
    CatalogEntry("DIVISLAB", "Divis Laboratories", 3700.00, "Pharma"),
    CatalogEntry("APOLLOHOSP", "Apollo Hospitals", 5200.00, "Healthcare"),
    CatalogEntry("EICHERMOT", "Eicher Motors", 3400.00, "Auto"),
    CatalogEntry("BAJAJ-AUTO", "Bajaj Auto", 5100.00, "Auto"),
    CatalogEntry("HEROMOTOCO", "Hero MotoCorp", 3100.00, "Auto"),
    CatalogEntry("TATACONSUM", "Tata Consumer", 900.00, "FMCG"),
    CatalogEntry("NESTLEIND", "Nestle India", 24000.00, "FMCG"),
    CatalogEntry("BRITANNIA", "Britannia", 4800.00, "FMCG"),
    CatalogEntry("TECHM", "Tech Mahindra", 1200.00, "IT"),
    CatalogEntry("LTIM", "LTIMindtree", 5200.00, "IT"),
    CatalogEntry("PIDILITIND", "Pidilite Industries", 2500.00, "Chemicals"),
    CatalogEntry("SBILIFE", "SBI Life Insurance", 1350.00, "Finance"),
    CatalogEntry("HDFCLIFE", "HDFC Life", 650.00, "Finance"),
    CatalogEntry("BAJAJHLDNG", "Bajaj Holdings", 7200.00, "Finance"),
]
