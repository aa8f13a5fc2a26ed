"""User-facing texts in the supported languages (en, es, fr, pt). English is the fallback."""

TRANSLATIONS: dict[str, dict[str, str]] = {
    "en": {
        "welcome": (
            "Welcome to HushPay! 🤫\n\n"
            "Your wallet is ready. Two ways to send:\n"
            '• "send 1 sol to +234..." (amount hidden)\n'
            '• "send anon 1 sol to [wallet]" (sender hidden)\n\n'
            "Commands: balance, deposit, withdraw, receipts, help"
        ),
        "help": (
            "HushPay Commands:\n\n"
            "💸 Send\n"
            "• send [amt] [token] to [phone or contact]\n"
            "• send anon [amt] [token] to [wallet]\n"
            "• split [amt] [token] between [phones]\n"
            "• send [amt] [token] to [phone] every week\n\n"
            "💰 Balance\n"
            "• balance\n"
            "• deposit [amt] [token]\n"
            "• withdraw [amt] [token]\n\n"
            "📜 History: receipts\n"
            "🔐 Security: set pin\n\n"
            "🔒 Regular = amount hidden\n"
            "🔒 Anon = sender hidden"
        ),
        "cancelled": "Cancelled. Nothing was sent.",
        "nothing_to_cancel": "Nothing to cancel.",
        "nothing_to_retry": "Nothing to retry.",
        "retry_prompt": "Retry: {summary}?\n\nReply YES to confirm.",
        "step_up_link": "🔐 Enter your PIN to confirm:\n{url}\n\nLink expires in 5 minutes.",
        "set_pin_link": "🔐 Set your PIN (4-6 digits) here:\n{url}\n\nLink expires in 5 minutes.",
        "rate_limited": "Too many requests. Please wait a minute and try again.",
        "send_success": "✓ Sent {amount} {token} to {recipient}\nAmount: [PRIVATE]\nTx: {tx}",
        "received": '💰 You received {amount} {token}!\nFrom: ...{sender}\n\nText "balance" to check.',
        "anon_send_success": "✓ Sent {amount} {token} anonymously\nSender: [UNTRACEABLE]\nTx: {tx}",
        "deposit_success": "✓ Deposited {amount} {token} to private pool\nPrivate balance: {balance} {token}",
        "withdraw_success": "✓ Withdrew {amount} {token} to public wallet\nTx: {tx}",
        "language_set": "Language set to English.",
        "deposit_done": "✓ Deposited {amount} {token} to private pool",
        "cross_chain_started": "✓ Cross-chain send started\n{amount} {token} → {chain} {address}\nOrder: {order}",
        "split_summary": "Split {total} {token}: {succeeded}/{count} sent, {share} each",
        "recurring_created": (
            "✓ Recurring payment #{id} set up\n{amount} {token} → {recipient} ({frequency})\n"
            "First payment will be sent now. Next: {next_run}"
        ),
        "daily": "daily",
        "weekly": "weekly",
        "monthly": "monthly",
        "pin_set": "✓ PIN set. Payments of {threshold} {token} or more will ask for it.",
    },
    "es": {
        "welcome": (
            "¡Bienvenido a HushPay! 🤫\n\n"
            "Tu billetera está lista. Dos formas de enviar:\n"
            '• "enviar 1 sol a +234..." (monto oculto)\n'
            '• "enviar anon 1 sol a [wallet]" (remitente oculto)\n\n'
            "Comandos: balance, depositar, retirar, recibos, ayuda"
        ),
        "help": (
            "Comandos HushPay:\n\n"
            "💸 Enviar\n"
            "• enviar [cant] [token] a [teléfono o contacto]\n"
            "• enviar anon [cant] [token] a [wallet]\n\n"
            "💰 Balance\n"
            "• balance\n"
            "• depositar [cant] [token]\n"
            "• retirar [cant] [token]\n\n"
            "📜 Historial: recibos\n\n"
            "🔒 Regular = monto oculto\n"
            "🔒 Anon = remitente oculto"
        ),
        "cancelled": "Cancelado. No se envió nada.",
        "nothing_to_cancel": "Nada que cancelar.",
        "nothing_to_retry": "Nada que reintentar.",
        "retry_prompt": "Reintentar: {summary}?\n\nResponde SÍ para confirmar.",
        "step_up_link": "🔐 Ingresa tu PIN para confirmar:\n{url}\n\nEl enlace expira en 5 minutos.",
        "set_pin_link": "🔐 Configura tu PIN (4-6 dígitos) aquí:\n{url}\n\nEl enlace expira en 5 minutos.",
        "rate_limited": "Demasiadas solicitudes. Espera un minuto e intenta de nuevo.",
        "send_success": "✓ Enviado {amount} {token} a {recipient}\nMonto: [PRIVADO]\nTx: {tx}",
        "anon_send_success": "✓ Enviado {amount} {token} anónimamente\nRemitente: [IMPOSIBLE RASTREAR]\nTx: {tx}",
        "deposit_success": "✓ Depositado {amount} {token} al pool privado\nBalance privado: {balance} {token}",
        "withdraw_success": "✓ Retirado {amount} {token} a billetera pública\nTx: {tx}",
        "language_set": "Idioma configurado: español.",
        "deposit_done": "✓ Depositado {amount} {token} al pool privado",
        "cross_chain_started": "✓ Envío entre cadenas iniciado\n{amount} {token} → {chain} {address}\nOrden: {order}",
        "split_summary": "División de {total} {token}: {succeeded}/{count} enviados, {share} cada uno",
        "recurring_created": (
            "✓ Pago recurrente #{id} configurado\n{amount} {token} → {recipient} ({frequency})\n"
            "El primer pago se enviará ahora. Siguiente: {next_run}"
        ),
        "daily": "diario",
        "weekly": "semanal",
        "monthly": "mensual",
        "pin_set": "✓ PIN configurado. Los pagos de {threshold} {token} o más lo pedirán.",
    },
    "fr": {
        "welcome": (
            "Bienvenue sur HushPay! 🤫\n\n"
            "Votre portefeuille est prêt. Deux façons d'envoyer:\n"
            '• "envoyer 1 sol à +234..." (montant caché)\n'
            '• "envoyer anon 1 sol à [wallet]" (expéditeur caché)\n\n'
            "Commandes: balance, dépôt, retrait, reçus, aide"
        ),
        "help": (
            "Commandes HushPay:\n\n"
            "💸 Envoyer\n"
            "• envoyer [montant] [token] à [téléphone ou contact]\n"
            "• envoyer anon [montant] [token] à [wallet]\n\n"
            "💰 Solde\n"
            "• balance\n"
            "• dépôt [montant] [token]\n"
            "• retrait [montant] [token]\n\n"
            "📜 Historique: reçus\n\n"
            "🔒 Regular = montant caché\n"
            "🔒 Anon = expéditeur caché"
        ),
        "cancelled": "Annulé. Rien n'a été envoyé.",
        "nothing_to_cancel": "Rien à annuler.",
        "nothing_to_retry": "Rien à réessayer.",
        "retry_prompt": "Réessayer: {summary}?\n\nRépondez OUI pour confirmer.",
        "step_up_link": "🔐 Entrez votre PIN pour confirmer:\n{url}\n\nLe lien expire dans 5 minutes.",
        "set_pin_link": "🔐 Définissez votre PIN (4-6 chiffres) ici:\n{url}\n\nLe lien expire dans 5 minutes.",
        "send_success": "✓ Envoyé {amount} {token} à {recipient}\nMontant: [PRIVÉ]\nTx: {tx}",
        "anon_send_success": "✓ Envoyé {amount} {token} anonymement\nExpéditeur: [INTRAÇABLE]\nTx: {tx}",
        "deposit_success": "✓ Déposé {amount} {token} dans le pool privé\nSolde privé: {balance} {token}",
        "withdraw_success": "✓ Retiré {amount} {token} vers portefeuille public\nTx: {tx}",
        "language_set": "Langue définie: français.",
        "deposit_done": "✓ Déposé {amount} {token} dans le pool privé",
        "cross_chain_started": "✓ Envoi inter-chaînes lancé\n{amount} {token} → {chain} {address}\nOrdre: {order}",
        "split_summary": "Partage de {total} {token}: {succeeded}/{count} envoyés, {share} chacun",
        "recurring_created": (
            "✓ Paiement récurrent #{id} configuré\n{amount} {token} → {recipient} ({frequency})\n"
            "Le premier paiement part maintenant. Prochain: {next_run}"
        ),
        "daily": "quotidien",
        "weekly": "hebdomadaire",
        "monthly": "mensuel",
        "pin_set": "✓ PIN défini. Les paiements de {threshold} {token} ou plus le demanderont.",
    },
    "pt": {
        "welcome": (
            "Bem-vindo ao HushPay! 🤫\n\n"
            "Sua carteira está pronta. Duas formas de enviar:\n"
            '• "enviar 1 sol para +234..." (valor oculto)\n'
            '• "enviar anon 1 sol para [wallet]" (remetente oculto)\n\n'
            "Comandos: saldo, depositar, sacar, recibos, ajuda"
        ),
        "help": (
            "Comandos HushPay:\n\n"
            "💸 Enviar\n"
            "• enviar [valor] [token] para [telefone ou contato]\n"
            "• enviar anon [valor] [token] para [wallet]\n\n"
            "💰 Saldo\n"
            "• saldo\n"
            "• depositar [valor] [token]\n"
            "• sacar [valor] [token]\n\n"
            "📜 Histórico: recibos\n\n"
            "🔒 Regular = valor oculto\n"
            "🔒 Anon = remetente oculto"
        ),
        "cancelled": "Cancelado. Nada foi enviado.",
        "nothing_to_cancel": "Nada para cancelar.",
        "nothing_to_retry": "Nada para tentar novamente.",
        "retry_prompt": "Tentar novamente: {summary}?\n\nResponda SIM para confirmar.",
        "step_up_link": "🔐 Digite seu PIN para confirmar:\n{url}\n\nO link expira em 5 minutos.",
        "set_pin_link": "🔐 Defina seu PIN (4-6 dígitos) aqui:\n{url}\n\nO link expira em 5 minutos.",
        "send_success": "✓ Enviado {amount} {token} para {recipient}\nValor: [PRIVADO]\nTx: {tx}",
        "anon_send_success": "✓ Enviado {amount} {token} anonimamente\nRemetente: [IMPOSSÍVEL RASTREAR]\nTx: {tx}",
        "deposit_success": "✓ Depositado {amount} {token} no pool privado\nSaldo privado: {balance} {token}",
        "withdraw_success": "✓ Sacado {amount} {token} para carteira pública\nTx: {tx}",
        "language_set": "Idioma definido: português.",
        "deposit_done": "✓ Depositado {amount} {token} no pool privado",
        "cross_chain_started": "✓ Envio entre redes iniciado\n{amount} {token} → {chain} {address}\nOrdem: {order}",
        "split_summary": "Divisão de {total} {token}: {succeeded}/{count} enviados, {share} cada",
        "recurring_created": (
            "✓ Pagamento recorrente #{id} configurado\n{amount} {token} → {recipient} ({frequency})\n"
            "O primeiro pagamento será enviado agora. Próximo: {next_run}"
        ),
        "daily": "diário",
        "weekly": "semanal",
        "monthly": "mensal",
        "pin_set": "✓ PIN definido. Pagamentos de {threshold} {token} ou mais vão pedi-lo.",
    },
}


def translate(key: str, language: str | None = None, **params) -> str:
    texts = TRANSLATIONS.get(language or "en", TRANSLATIONS["en"])
    text = texts.get(key) or TRANSLATIONS["en"][key]
    return text.format(**params) if params else text
