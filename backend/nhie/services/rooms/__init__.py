"""Room domain services: store, answer ledger, scoring, round control, fanout.

Routes and socket handlers call into ``controller``; the rest of the
package stays free of transport concerns so round mechanics can be
exercised directly.
"""
