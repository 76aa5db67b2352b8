import datetime

MONTH_ABBREVIATIONS = [
    "Jan",
    "Feb",
    "Mar",
    "Apr",
    "May",
    "Jun",
    "Jul",
    "Aug",
    "Sep",
    "Oct",
    "Nov",
    "Dec",
]


class Translator:
    def __init__(self) -> None:
        self.language = "en"
        self.translations = {
            "en": {},
            "es": {
                "Today": "Hoy",
                "Yesterday": "Ayer",
                "indoors": "interior",
                "outdoors": "exterior",
                "reps": "reps",
                "series": "series",
                "Saved!": "¡Guardado!",
                "Could not save": "No se pudo guardar",
                "Something went wrong. Please try again.": "Algo salió mal. Inténtalo de nuevo.",
                "Jan": "ene",
                "Feb": "feb",
                "Mar": "mar",
                "Apr": "abr",
                "May": "may",
                "Jun": "jun",
                "Jul": "jul",
                "Aug": "ago",
                "Sep": "sept",
                "Oct": "oct",
                "Nov": "nov",
                "Dec": "dic",
            },
        }

    def set_language(self, lang: str) -> None:
        self.language = lang

    def gettext(self, key: str) -> str:
        return self.translations.get(self.language, {}).get(key, key)

    def medium_date(self, day: datetime.date) -> str:
        """Format ``day`` in the medium style of the current language."""
        month = self.gettext(MONTH_ABBREVIATIONS[day.month - 1])
        if self.language == "en":
            return f"{month} {day.day}, {day.year}"
        return f"{day.day} {month} {day.year}"

translator = Translator()
