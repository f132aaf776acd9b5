# Importe tous les modèles pour enregistrer leurs tables dans Base.metadata
# avant que les routers ou les tests (create_all) n'en aient besoin.

from app.models.sample import Sample  # noqa: F401
