# ISO 4217 alphabetic code -> (numeric code, minor unit, symbol, name)
ISO_CURRENCIES = {
    "AED": ("784", 2, "د.إ", "UAE Dirham"),
    "ARS": ("032", 2, "$", "Argentine Peso"),
    "AUD": ("036", 2, "A$", "Australian Dollar"),
    "BHD": ("048", 3, "BD", "Bahraini Dinar"),
    "BRL": ("986", 2, "R$", "Brazilian Real"),
    "CAD": ("124", 2, "CA$", "Canadian Dollar"),
    "CHF": ("756", 2, "CHF", "Swiss Franc"),
    "CLP": ("152", 0, "$", "Chilean Peso"),
    "CNY": ("156", 2, "¥", "Yuan Renminbi"),
    "CZK": ("203", 2, "Kč", "Czech Koruna"),
    "DKK": ("208", 2, "kr", "Danish Krone"),
    "EUR": ("978", 2, "€", "Euro"),
    "GBP": ("826", 2, "£", "Pound Sterling"),
    "HKD": ("344", 2, "HK$", "Hong Kong Dollar"),
    "HUF": ("348", 2, "Ft", "Forint"),
    "IDR": ("360", 2, "Rp", "Rupiah"),
    "ILS": ("376", 2, "₪", "New Israeli Sheqel"),
    "INR": ("356", 2, "₹", "Indian Rupee"),
    "ISK": ("352", 0, "kr", "Iceland Krona"),
    "JOD": ("400", 3, "JD", "Jordanian Dinar"),
    "JPY": ("392", 0, "¥", "Yen"),
    "KRW": ("410", 0, "₩", "Won"),
    "KWD": ("414", 3, "KD", "Kuwaiti Dinar"),
    "MXN": ("484", 2, "MX$", "Mexican Peso"),
    "MYR": ("458", 2, "RM", "Malaysian Ringgit"),
    "NOK": ("578", 2, "kr", "Norwegian Krone"),
    "NZD": ("554", 2, "NZ$", "New Zealand Dollar"),
    "OMR": ("512", 3, "ر.ع.", "Rial Omani"),
    "PHP": ("608", 2, "₱", "Philippine Peso"),
    "PLN": ("985", 2, "zł", "Zloty"),
    "SAR": ("682", 2, "﷼", "Saudi Riyal"),
    "SEK": ("752", 2, "kr", "Swedish Krona"),
    "SGD": ("702", 2, "S$", "Singapore Dollar"),
    "THB": ("764", 2, "฿", "Baht"),
    "TND": ("788", 3, "DT", "Tunisian Dinar"),
    "TRY": ("949", 2, "₺", "Turkish Lira"),
    "TWD": ("901", 2, "NT$", "New Taiwan Dollar"),
    "UGX": ("800", 0, "USh", "Uganda Shilling"),
    "USD": ("840", 2, "$", "US Dollar"),
    "VND": ("704", 0, "₫", "Dong"),
    "XAF": ("950", 0, "FCFA", "CFA Franc BEAC"),
    "ZAR": ("710", 2, "R", "Rand"),
}
