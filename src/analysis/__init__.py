"""
Analysis package.

Contiene:
- scores: parsing dei punteggi testuali ("2-1")
- outcomes: derivazione degli esiti canonici dai punteggi
- markets: definizioni statiche dei mercati condivise da matcher e aggregatore
- similarity: ricerca di partite storiche con quote simili
- statistics: tabella delle frequenze degli esiti realizzati
- service / report: orchestrazione e contesto testuale per il generatore narrativo
"""
