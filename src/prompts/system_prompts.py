"""
Booking instructions appended to the availability context given to the AI.

The command format here is the one ``src.tools.booking.parse_booking_command``
understands; change both together.
"""

BOOKING_COMMAND_FORMAT = '[AGENDAR: YYYY-MM-DD HH:MM DURAÇÃO "NOME DO CLIENTE" "Serviço: NOME"]'

SCHEDULING_INSTRUCTIONS = f"""COMO RESPONDER:

EXEMPLO 1 - Cliente pede horário LIVRE:
Cliente: "Pode ser às 9h?"
Resposta: "Sim! Posso às 09:00. Confirmas?"

EXEMPLO 2 - Cliente pede horário OCUPADO:
Cliente: "Quero às 10h"
Resposta: "Não tenho às 10h. Tenho às 10:30. Pode ser?"

REGRAS:
- Se o horário NÃO sobrepõe nenhum OCUPADO e cabe no horário do dia, aceita.
- Se SOBREPÕE, rejeita e sugere o primeiro horário livre.
- Nunca proponhas dias FECHADOS nem dias LOTADOS.
- Respostas CURTAS (2 frases), sem markdown.
- Depois de o cliente confirmar, inclui o comando:
  {BOOKING_COMMAND_FORMAT}
"""
