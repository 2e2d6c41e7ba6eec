class Translator:
    def __init__(self) -> None:
        self.language = "en"
        self.translations = {
            "en": {},
            "es": {
                "No active workout": "No hay entrenamiento activo",
                "You will be redirected to start a new one": "Serás redirigido para iniciar uno nuevo",
                "Error": "Error",
                "Could not load the active workout": "No se pudo cargar el entrenamiento activo",
                "Session expired": "Sesión expirada",
                "Please reload the page to continue": "Recarga la página para continuar",
                "Could not update set": "No se pudo actualizar el set",
                "Exercise completed": "Ejercicio completado",
                "The exercise has been marked as completed": "Se ha marcado el ejercicio como completado",
                "Could not complete the exercise": "No se pudo completar el ejercicio",
                "Rest finished": "Descanso terminado",
                "Time for the next set": "Es hora del siguiente set",
                "Notes saved": "Notas guardadas",
                "Could not save the notes": "No se pudieron guardar las notas",
                "Workout completed!": "¡Entrenamiento completado!",
                "Duration": "Duración",
                "Could not complete the workout": "No se pudo completar el entrenamiento",
                "Workout discarded": "Entrenamiento descartado",
                "The workout session has been deleted": "Se ha eliminado la sesión de entrenamiento",
                "Could not discard the workout": "No se pudo descartar el entrenamiento",
            },
        }

    def set_language(self, lang: str) -> None:
        self.language = lang

    def gettext(self, key: str) -> str:
        return self.translations.get(self.language, {}).get(key, key)
